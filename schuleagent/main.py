import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schuleagent.api.v1.appointments import router as appointments_router
from schuleagent.api.webhooks import router as webhooks_router
from schuleagent.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("identity", "step", "next_step", "service", "appointment_id", "patient_id", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)

app = FastAPI(title=f"{settings.SERVICE_NAME} - {settings.CLINIC_NAME}", version=settings.APP_VERSION)

app.include_router(webhooks_router, tags=["webhooks"])
app.include_router(appointments_router, prefix="/api", tags=["appointments"])


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"reason": type(exc).__name__})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
def index() -> dict[str, str]:
    return {
        "status": "ok",
        "service": f"{settings.SERVICE_NAME} - {settings.CLINIC_NAME}",
        "version": settings.APP_VERSION,
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("schuleagent.main:app", host="0.0.0.0", port=settings.PORT)
