"""ASGI entry point: ``uvicorn sitfit.start:app``."""

import uvicorn

from sitfit.app import create_app
from sitfit.utils.logging_config import setup_logging

# Set up logging
setup_logging()

app = create_app()


if __name__ == "__main__":
    uvicorn.run("sitfit.start:app", host="0.0.0.0", port=8000)
