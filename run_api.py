#!/usr/bin/env python3
"""
Startup script for the Invoice Templates FastAPI server.

Usage:
    python run_api.py

Or with uvicorn directly:
    uvicorn invoice_templates.api.main:app --reload --host 0.0.0.0 --port 8080

Storage is configured through TEMPLATE_BACKEND / TEMPLATE_DB_PATH
(see invoice_templates/config/store_config.py).
"""

import logging

import uvicorn

logging.basicConfig(level=logging.INFO)

if __name__ == "__main__":
    uvicorn.run(
        "invoice_templates.api.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,  # Auto-reload on code changes (dev mode)
        log_level="info",
    )
