import logging

from fastapi import FastAPI

from .settings import settings
from .routers import evaluate

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="PTE Evaluation API")
app.include_router(evaluate.router)

@app.get("/info")
def root():
	return {"status": "ok", "oracle_configured": settings.oracle_configured}
