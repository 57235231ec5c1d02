# tarot_app/api/routes/root_routes.py
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/")
async def read_root():
    return {"message": "Tarot 2026 reading API"}


@router.get("/health")
async def health(request: Request):
    interpreter = request.app.state.interpreter
    return {"status": "ok", "aiConfigured": interpreter.configured}
