from matchmaker.schemas.init import init_beanie_odm
from matchmaker.shared.storage.mongo import get_mongo_client

MATCHMAKER_MONGO_LABEL = "matchmaker"
DEFAULT_DATABASE_NAME = "matchmaker"


async def init_schema():
    mongo_client = get_mongo_client(MATCHMAKER_MONGO_LABEL)
    db = mongo_client.get_default_database(DEFAULT_DATABASE_NAME)
    await init_beanie_odm(db)


if __name__ == "__main__":
    import asyncio

    asyncio.run(init_schema())
