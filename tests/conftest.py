import os

# Keep the service graph free of network collaborators during tests
os.environ.update(
    {
        "ACCOUNT_SERVICE_URL": "",
        "OWNER_NOTIFY_WEBHOOK_URL": "",
        "INTERNAL_API_KEY": "",
    }
)

# Import fixtures so they are available to all tests
from tests.fixtures.clock_fixtures import *  # noqa: E402, F403
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403
from tests.fixtures.api_fixtures import *  # noqa: E402, F403
