from tomte.api import Addon, get_logger

logger = get_logger(__name__)


async def execute(client):
    logger.info("hello.ready", user=str(getattr(client, "user", None)))


ADDON = Addon(execute=execute)
