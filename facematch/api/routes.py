"""Face comparison API routes.

This module provides the API endpoints for face comparison, taking two images
either as remote URLs or as inline base64 payloads, plus a readiness check.
"""

import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ..core.matcher import FaceMatchService
from ..errors import InvalidRequestError, PayloadTooLargeError, ServiceNotReadyError
from ..models.types import ErrorResponse, FaceMatchRequest, HealthStatus, MatchResult

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_ERROR: ErrorResponse = {'error': 'An error occurred'}
NOT_READY_ERROR: ErrorResponse = {'error': 'Service not ready'}
PAYLOAD_TOO_LARGE_ERROR: ErrorResponse = {'error': 'Payload too large'}


async def read_image_pair(request: Request) -> FaceMatchRequest:
    """Read the ``selfie`` and ``id_photo`` fields from a JSON or form body.

    Raises:
        InvalidRequestError: If the body is not an object with two string fields.
    """
    content_type = request.headers.get('content-type', '')
    if content_type.startswith('application/x-www-form-urlencoded'):
        data = dict(await request.form())
    else:
        data = await request.json()

    if not isinstance(data, dict):
        raise InvalidRequestError("Request body must be an object")

    selfie = data.get('selfie')
    id_photo = data.get('id_photo')
    if not isinstance(selfie, str) or not isinstance(id_photo, str):
        raise InvalidRequestError("Both 'selfie' and 'id_photo' must be strings")

    return {'selfie': selfie, 'id_photo': id_photo}


def get_service(request: Request) -> FaceMatchService:
    if request.app.state.model_status != 'ok':
        raise ServiceNotReadyError(f"Face models are {request.app.state.model_status}")
    return request.app.state.matcher


async def handle_comparison(
    request: Request,
    select: Callable[[FaceMatchService], Callable[[str, str], Awaitable[MatchResult]]],
) -> JSONResponse:
    """Run one comparison request, mapping every failure to a generic error."""
    try:
        service = get_service(request)
        pair = await read_image_pair(request)
        result = await select(service)(pair['selfie'], pair['id_photo'])
        return JSONResponse(content=result)

    except ServiceNotReadyError as e:
        logger.warning(f"Rejected {request.url.path}: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=NOT_READY_ERROR
        )
    except PayloadTooLargeError as e:
        logger.warning(f"Rejected {request.url.path}: {str(e)}")
        return JSONResponse(
            status_code=413,
            content=PAYLOAD_TOO_LARGE_ERROR
        )
    except Exception as e:
        logger.error(f"Error in {request.url.path}: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=GENERIC_ERROR
        )


@router.post("/compare-faces/url", response_model=None)
async def compare_faces_url(request: Request) -> JSONResponse:
    """Compare the faces in two remote images.

    Args:
        request: Body with ``selfie`` and ``id_photo`` image URLs.

    Returns:
        ``{"match": "Match" | "No match" | null, "samePerson": bool}``, or a
        500 ``{"error": "An error occurred"}`` when either image fails.
    """
    return await handle_comparison(request, lambda service: service.compare_urls)


@router.post("/compare-faces/base64", response_model=None)
async def compare_faces_base64(request: Request) -> JSONResponse:
    """Compare the faces in two inline images (data URIs or bare base64)."""
    return await handle_comparison(request, lambda service: service.compare_embedded)


@router.get("/health", response_model=None)
async def health(request: Request) -> JSONResponse:
    """Report whether the face models are loaded."""
    model_status = request.app.state.model_status
    body: HealthStatus = {
        'status': model_status,
        'modelsLoaded': model_status == 'ok',
        'cacheEntries': len(request.app.state.matcher.cache),
    }
    code = status.HTTP_200_OK if model_status == 'ok' else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=body)
