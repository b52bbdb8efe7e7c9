import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatbot_engine.config import settings
from chatbot_engine.logging_config import setup_logging
from chatbot_engine.routers import chatbots, conversations

setup_logging(settings.log_level, debug_sql=settings.debug)

app = FastAPI(
    title="Chatbot Engine",
    description="WhatsApp chatbot message processing service",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chatbots.router)
app.include_router(conversations.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
