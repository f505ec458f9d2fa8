from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # Core
    env: str = Field(default="prod", alias="GIST_ENV")
    database_url: str = Field(default="sqlite:///./gist.db", alias="DATABASE_URL")

    # Tree parameters are pinned in gist_head on first start
    smt_depth: int = Field(default=64, alias="GIST_SMT_DEPTH", ge=2, le=256)
    hash_engine: str = Field(default="sha256", alias="GIST_HASH_ENGINE")

    # "allow_all", "deny_all" or "package.module:attr"
    verifier: str = Field(default="deny_all", alias="GIST_VERIFIER")

    # Ed25519 seed (base64) for signed root checkpoints
    checkpoint_signing_key_b64: str | None = Field(default=None, alias="GIST_CHECKPOINT_SIGNING_KEY_B64")

    # Optional
    allowed_origins: str = Field(default="*", alias="GIST_ALLOWED_ORIGINS")
    log_level: str = Field(default="INFO", alias="GIST_LOG_LEVEL")

    # Query limits
    history_page_limit: int = Field(default=1000, alias="GIST_HISTORY_PAGE_LIMIT")
    export_limit: int = Field(default=5000, alias="GIST_EXPORT_LIMIT")

    @property
    def allowed_origins_list(self):
        v = (self.allowed_origins or "*").strip()
        if v == "*" or v == "":
            return ["*"]
        return [x.strip() for x in v.split(",") if x.strip()]


settings = Settings()
