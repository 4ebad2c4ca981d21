from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from ranttrack.api.routes import router as api_router
from ranttrack.config import CORS_ORIGINS

app = FastAPI(
    title="RantTrack symptom extraction",
    version="0.1.0",
    description="Offline, rule-based symptom extraction and day segmentation for chronic-illness journals.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()  # default registry
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


app.include_router(api_router, prefix="/api")
