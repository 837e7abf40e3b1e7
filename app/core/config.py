import os

from dotenv import load_dotenv

load_dotenv()

class Settings:
    PROJECT_NAME: str = "registry-signer"
    VERSION: str = "0.1.0"

    # Strategy selection
    PRIVATE_KEY_ENV: str = os.getenv("PRIVATE_KEY_ENV_NAME", "PRIVATE_KEY").strip() or "PRIVATE_KEY"

    # Browser signing bridge
    BRIDGE_HOST: str = "127.0.0.1"
    BRIDGE_TIMEOUT_SEC: float = float(os.getenv("BRIDGE_TIMEOUT_SEC", "300"))

    # RPC
    HTTP_TIMEOUT_SEC: float = float(os.getenv("HTTP_TIMEOUT_SEC", "10"))

settings = Settings()
