import logging

from safestock.core.config import get_settings
from safestock.hub.app import create_hub_app

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_hub_app(settings.hub_database_url)
