"""
Start the AdOps Analytics API server
"""
import uvicorn
from dotenv import load_dotenv

load_dotenv()

from adops.core.config import Config  # noqa: E402
from adops.utils.logger import setup_logging  # noqa: E402

setup_logging()

from adops.api.app import app  # noqa: E402,F401

if __name__ == "__main__":
    host = Config.get("api", "host", default="0.0.0.0")
    port = int(Config.get("api", "port", default=8000))

    print("\n" + "=" * 60)
    print("Starting AdOps Analytics API Server")
    print("=" * 60)
    print(f"URL: http://localhost:{port}")
    print(f"Docs: http://localhost:{port}/docs")
    print("=" * 60 + "\n")

    uvicorn.run(
        "start_api:app",
        host=host,
        port=port,
        reload=True,
        log_level="info"
    )
