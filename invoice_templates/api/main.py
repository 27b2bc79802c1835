# invoice_templates/api/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from invoice_templates.api.templates import router as templates_router

app = FastAPI(
    title="Invoice Templates API",
    description="Per-issuer invoice field templates learned from confirmed scans.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(templates_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
