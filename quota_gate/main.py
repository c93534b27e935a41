import uvicorn

from quota_gate.core.app_factory import create_app
from quota_gate.core.config import settings

app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(app, host=settings.app.host, port=settings.app.port)
