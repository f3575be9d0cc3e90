import logging

from fastapi import APIRouter, Depends

from auth import get_current_user_id
from render_service import RemotionLambdaClient, get_lambda_client
from schema import LambdaProgressRequest, LambdaRenderRequest, envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lambda", tags=["lambda"])


@router.post("/render")
def render(request: LambdaRenderRequest,
           user_id: str = Depends(get_current_user_id),
           client: RemotionLambdaClient = Depends(get_lambda_client)):
    result = client.start_render(request.id, request.input_props)
    logger.info("Lambda render %s started for user %s", result["renderId"], user_id)
    return envelope(result)


@router.post("/progress")
def progress(request: LambdaProgressRequest,
             user_id: str = Depends(get_current_user_id),
             client: RemotionLambdaClient = Depends(get_lambda_client)):
    return envelope(client.get_progress(request.id))
