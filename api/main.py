from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes.export import router as export_router
from api.routes.generate import router as generate_router
from api.routes.ideas import router as ideas_router

app = FastAPI(title="Chord Progression Generator")

# CORS — allow a local web UI (React/Vite dev server) to call the API
# Include both localhost and 127.0.0.1 variants — browsers treat them as different origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate_router)
app.include_router(export_router)
app.include_router(ideas_router)


@app.get("/health")
def health() -> dict[str, str]:
    """Return a simple liveness check."""
    return {"status": "ok"}
