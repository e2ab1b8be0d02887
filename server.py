import logging
import os

from fastapi import FastAPI, Header, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

# Twilio for WhatsApp replies
from twilio.twiml.messaging_response import MessagingResponse

from arbitration import no_info_message
from assistant import HealthAssistant
from config import settings
from languages import SUPPORTED_LANGUAGES, normalize_language, resolve_request_language
from logging_config import configure_logging

logger = logging.getLogger(__name__)

WHATSAPP_ERROR_REPLY = "Server error. Please try again."

# ------------------ request bodies ------------------


class ChatMessage(BaseModel):
    message: str = ""
    lang: str | None = None


class TextRequest(BaseModel):
    text: str = ""
    lang: str | None = None


class SymptomsRequest(BaseModel):
    symptoms: str | list[str] = ""
    lang: str | None = None


class TrainingItem(BaseModel):
    text: str
    label: str
    type: str


class RetrainRequest(BaseModel):
    training_data: list[TrainingItem] = Field(default_factory=list)


# ------------------ app ------------------


def create_app(assistant: HealthAssistant | None = None) -> FastAPI:
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(title="Ziva Health Assistant")
    app.state.assistant = assistant or HealthAssistant.from_settings(settings)

    if os.path.isdir("public"):
        app.mount("/public", StaticFiles(directory="public"), name="public")

    @app.exception_handler(ValueError)
    async def bad_request(_request: Request, exc: ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def server_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse({"error": "Server error"}, status_code=500)

    def service() -> HealthAssistant:
        return app.state.assistant

    # ------------------ web UI ------------------

    @app.get("/")
    def index():
        path = os.path.join("public", "index.html")
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                return HTMLResponse(f.read())
        return HTMLResponse("<h1>Ziva</h1><p>UI not found.</p>")

    @app.get("/health")
    def health():
        return {"ok": True, "service": "Ziva Health Assistant", "languages": SUPPORTED_LANGUAGES}

    # ------------------ /chat ------------------

    @app.post("/chat")
    async def chat(msg: ChatMessage, lang: str | None = None, x_user_lang: str | None = Header(default=None)):
        user_lang = resolve_request_language(lang, x_user_lang, msg.lang)
        return await service().resolve_query(msg.message, user_lang)

    @app.get("/alerts")
    async def alerts(lang: str = "en"):
        return await service().list_alerts(lang)

    @app.get("/learn/entries")
    async def learn_entries(lang: str = "en", category: str | None = None):
        return await service().list_entries(lang, category)

    @app.get("/vaccines")
    async def vaccines(lang: str = "en"):
        return await service().list_vaccines(lang)

    # ------------------ Naive Bayes ------------------

    @app.post("/nb/train")
    def nb_train():
        return service().train()

    @app.post("/nb/retrain")
    def nb_retrain(req: RetrainRequest):
        if not req.training_data:
            raise ValueError("Training data array is required")
        return service().retrain([item.model_dump() for item in req.training_data])

    @app.post("/nb/classify-intent")
    async def nb_classify_intent(req: TextRequest):
        return await service().classify_intent(req.text, req.lang or "auto")

    @app.post("/nb/classify-disease")
    async def nb_classify_disease(req: SymptomsRequest):
        return await service().classify_disease(req.symptoms, req.lang or "auto")

    @app.post("/nb/analyze")
    async def nb_analyze(req: TextRequest):
        return await service().analyze(req.text, req.lang or "auto")

    @app.get("/nb/stats")
    def nb_stats():
        return service().stats()

    # ------------------ WhatsApp webhook ------------------

    @app.post("/whatsapp")
    async def whatsapp_webhook(request: Request):
        form = await request.form()
        raw_body = (form.get("Body") or "").strip()

        # optional "lang:hi your question" prefix
        lang = "auto"
        text = raw_body
        if raw_body.lower().startswith("lang:"):
            prefix, _, rest = raw_body.partition(" ")
            lang = resolve_request_language(prefix[5:])
            text = rest

        resp = MessagingResponse()
        try:
            result = await service().resolve_query(text, lang)
            resp.message(result["reply"])
        except ValueError:
            resp.message(no_info_message(normalize_language(lang)))
        except Exception:
            logger.exception("WhatsApp webhook failed")
            resp.message(WHATSAPP_ERROR_REPLY)

        return PlainTextResponse(content=str(resp), media_type="application/xml")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
