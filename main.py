from __future__ import annotations

import uvicorn

from ddr.api import create_app
from ddr.settings import settings

app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
