"""
Centralized runtime configuration for the backend.

This module uses `python-dotenv` to read a local `.env` file during
development and exposes a Pydantic `Settings` model named `settings`.

Environment variables used:
- `COSMOS_ENDPOINT`: Cosmos DB account endpoint used by `db.open_container()`.
- `COSMOS_KEY`: account key for the endpoint above.
- `COSMOS_DATABASE` / `COSMOS_CONTAINER`: where events are stored.
  The container must be partitioned on `/deviceId`.
- `API_KEY`: shared secret expected as `Authorization: Bearer <API_KEY>`.
- `DEFAULT_RANGE_MINUTES`: window used when a range query omits its bounds.
- `LOG_LEVEL`: root logging level.

Example `.env`:
COSMOS_ENDPOINT=https://localhost:8081/
COSMOS_KEY=<emulator key>
API_KEY=change-me

"""

from pydantic import BaseModel
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseModel):
    """Typed settings container.

    All downstream code should import `settings` from this module. Use
    these attributes (not os.getenv) so tests can monkeypatch `settings`.
    """

    cosmos_endpoint: str = os.getenv("COSMOS_ENDPOINT", "https://localhost:8081/")
    cosmos_key: str = os.getenv("COSMOS_KEY", "")
    cosmos_database: str = os.getenv("COSMOS_DATABASE", "telemetry")
    cosmos_container: str = os.getenv("COSMOS_CONTAINER", "events")
    api_key: str = os.getenv("API_KEY", "")
    default_range_minutes: int = int(os.getenv("DEFAULT_RANGE_MINUTES", "60"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
