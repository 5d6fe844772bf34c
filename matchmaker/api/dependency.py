from typing import Annotated

from fastapi import Depends

from matchmaker.app_config import get_app_environ_config
from matchmaker.domain.signaling.signaling_domain import MatchmakerService, create_matchmaker_service
from matchmaker.shared.api.utils import verify_api_key

# Singleton instance; the session store is process-local state
_matchmaker_service = create_matchmaker_service(get_app_environ_config())


def get_matchmaker_service() -> MatchmakerService:
    """Get the singleton MatchmakerService instance."""
    return _matchmaker_service


Matchmaker = Annotated[MatchmakerService, Depends(get_matchmaker_service)]
ApiKey = Depends(verify_api_key)
