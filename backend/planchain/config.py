from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    LOG_LEVEL: str = "INFO"
    # Fixed-point depth bounds (practical maximum observed is ~3 overlapping segments)
    CHAIN_MAX_DEPTH: int = 5
    MERGE_MAX_DEPTH: int = 5
    # Priority given to an unmerged sequence that already spans its whole chain.
    # Opaque: only needs to rank above zero.
    SINGLETON_MATCH_SCORE: int = 2
    # Record column names
    ENTITY_COLUMN: str = "homesite_id"
    CONTEXT_COLUMN: str = "community_id"
    LABEL_COLUMN: str = "floor_plan"
    ATTR1_COLUMN: str = "bed"
    ATTR2_COLUMN: str = "bath"
    TIMESTAMP_COLUMN: str = "report_date"
    # Rejection messages kept in a run summary
    MAX_REPORTED_ERRORS: int = 50


settings = Settings()
