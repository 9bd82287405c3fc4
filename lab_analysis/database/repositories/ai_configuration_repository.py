from psycopg.rows import dict_row

from lab_analysis.config.settings import Settings
from lab_analysis.database.connection import get_connection
from lab_analysis.gateway.config_store import BaseProviderConfigStore, default_provider_config
from lab_analysis.gateway.models import ProviderConfig
from lab_analysis.gateway.registry import build_provider_config
from lab_analysis.logging.logger import Log


class AIConfigurationRepository(BaseProviderConfigStore):
    """Reads per-page AI configuration from the ai_configurations table."""

    def __init__(self, settings: Settings) -> None:
        self._defaults = default_provider_config(settings)

    def get_active_config(self, page_key: str) -> ProviderConfig:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT model, temperature, max_tokens, prompt, is_active
                    FROM ai_configurations
                    WHERE page_key = %s AND is_active
                    ORDER BY updated_at DESC, id DESC
                    LIMIT 1
                    """,
                    (page_key,),
                )
                row = cur.fetchone()

        if row is None or not row["model"]:
            Log.info("No active AI configuration, using defaults", page_key=page_key)
            return self._defaults

        return build_provider_config(
            model_id=row["model"],
            temperature=float(row["temperature"]),
            max_tokens=int(row["max_tokens"]),
            prompt_template=row["prompt"] or "",
            is_active=bool(row["is_active"]),
        )
