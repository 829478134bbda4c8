import logging

from fastapi import FastAPI

from salon_scheduler.api.v1.appointments import router as appointments_router
from salon_scheduler.api.v1.sessions import router as sessions_router
from salon_scheduler.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("session_id", "stage", "outcome", "professional_id", "date", "error"):
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

app = FastAPI(title="Salon Appointment Scheduler", version="1.0.0")

app.include_router(sessions_router, prefix="/api/v1/sessions", tags=["sessions"])
app.include_router(appointments_router, prefix="/api/v1/appointments", tags=["appointments"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
