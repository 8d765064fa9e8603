#!/usr/bin/env python3
"""
Development server launcher for the Public Encrypt API.

This script starts the FastAPI server with appropriate settings for development.
For production, you'd use a proper ASGI server deployment.
"""

import logging
import uvicorn
import sys
from pathlib import Path

# Add project root to Python path so `src.` imports work correctly
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(project_root))

from src.api.settings import load_settings

if __name__ == "__main__":
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"Starting {settings.name} Development Server")
    print(f"Project root: {project_root}")
    print("Server will be available at: http://localhost:8000")
    print("API documentation at: http://localhost:8000/docs")
    print("\n" + "="*50 + "\n")

    # Start the server
    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",  # Accept connections from any IP
        port=8000,
        reload=True,     # Auto-reload on code changes (development only)
        reload_dirs=[str(src_path)],  # Only watch src directory
        log_level=settings.log_level.lower()
    )
