"""FastAPI application entry point for the QL label printer service."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import printer

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Brother QL Label Printer", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(printer.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": app.version}
