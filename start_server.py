"""Startup script for container deployments."""
import uvicorn

from backoffice import config

if __name__ == "__main__":
    print(f"Starting uvicorn on port {config.PORT}", flush=True)
    uvicorn.run(
        "backoffice.app:app",
        host="0.0.0.0",
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
