# tarot_app/api/routes/interpretation_routes.py
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tarot_app.core.dependencies import get_interpretation_service
from tarot_app.core.exceptions import (
    GenerationTimeoutError,
    InterpretationError,
    InvalidRequestError,
    MissingCredentialsError,
    UpstreamError,
)
from tarot_app.models.tarot_models import AIInterpretation, ErrorResponse, InterpretationRequest
from tarot_app.services.tarot_services import InterpretationService

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_MESSAGES = {
    MissingCredentialsError: "AI service is not configured. Check the GOOGLE_GENERATIVE_AI_API_KEY environment variable.",
    InvalidRequestError: "Invalid interpretation request.",
    GenerationTimeoutError: "AI interpretation timed out.",
    UpstreamError: "Error while generating the interpretation.",
}


def interpretation_error_response(error: InterpretationError) -> JSONResponse:
    """Error envelope {error, details?} with the status matching the failure."""
    message = ERROR_MESSAGES.get(type(error), "Error while generating the interpretation.")
    body = ErrorResponse(error=message, details=str(error) or None)
    return JSONResponse(status_code=error.status_code, content=body.model_dump(exclude_none=True))


@router.post(
    "/tarot-interpretation",
    response_model=AIInterpretation,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def generate_tarot_interpretation(
    request: InterpretationRequest,
    interpreter: InterpretationService = Depends(get_interpretation_service),
):
    """
    Generate the AI interpretation for exactly three drawn cards.
    """
    try:
        return await interpreter.generate(None, request.card_ids, request.category, request.card_orientations)
    except InterpretationError as e:
        logger.error(f"Error generating interpretation: {e}")
        return interpretation_error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error generating interpretation: {e}")
        body = ErrorResponse(error="Error while generating the interpretation.", details=str(e) or None)
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
