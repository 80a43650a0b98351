#!/usr/bin/env python3
"""Run the application."""
import uvicorn

from planwise.infrastructure.config import load_config

if __name__ == "__main__":
    config = load_config()
    uvicorn.run(
        "planwise.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=True,
    )
