from pathlib import Path
from pydantic_settings import BaseSettings


_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    gemini_model: str = "gemini-2.5-flash-lite"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    # Ask the backend for JSON output; gemma models need this off
    structured_output: bool = True
    # Send the answer schema as responseSchema alongside the JSON mime type
    send_response_schema: bool = True
    request_timeout_seconds: float = 60.0
    temperature: float = 0.2
    max_output_tokens: int = 8192

    start_url: str = "https://www.freecodecamp.org/learn"
    headless: bool = False

    quiz_settle_seconds: float = 0.5
    big_quiz_settle_seconds: float = 1.0
    auto_submit: bool = True
    clipboard_enabled: bool = True

    @property
    def project_root(self) -> Path:
        return _PROJECT_ROOT

    @property
    def browser_data_dir(self) -> Path:
        return self.project_root / ".browser_data"

    @property
    def credential_file(self) -> Path:
        return self.project_root / ".fcc_helper_credentials.json"

    @property
    def log_file(self) -> Path:
        return self.project_root / "fcc_helper.log"


settings = Settings()
