"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..models.model_router import get_model_router
from ..routers import system, translation

logger = logging.getLogger("ai_translator.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting AI Translator API...")
    logger.info("Available models: %s", list(get_model_router().get_available_models().keys()))
    yield
    logger.info("Shutting down AI Translator API...")


# Initialize FastAPI app
app = FastAPI(
    title="AI Translator API",
    description="""
Translates localization strings with large language models.

**Key Features:**
- Streams model output and parses each translated key as soon as it arrives.
- Verifies that every requested key came back and retries incomplete batches.
- Real-time progress via Server-Sent Events (SSE).
- Configurable language models (Claude, GPT, Gemini).
    """,
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router)
app.include_router(translation.router)


def create_app() -> FastAPI:
    """Factory function to create the FastAPI app."""
    return app
