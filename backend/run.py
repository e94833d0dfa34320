#!/usr/bin/env python3
# backend/run.py
"""
Development server runner for the TheraSoul API.

Creates tables on startup against whatever DATABASE_URL points at
(a local SQLite file by default).
"""
import os
from pathlib import Path
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("AUTO_CREATE_TABLES", "true")

import uvicorn

if __name__ == "__main__":
    print("Starting TheraSoul development server")
    print("Access at: http://localhost:8000")
    print("API Docs: http://localhost:8000/docs")

    uvicorn.run(
        "therasoul.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
