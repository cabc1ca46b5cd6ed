# deploy.py is a FastAPI router that handles manual deployment requests.

from fastapi import APIRouter, Depends, HTTPException, status
from dependencies import get_deploy_api_key
from deployer import deploy_repository
from exceptions import UnknownRepositoryError
from models.deploy_request import DeployRequest
from notifications import Notifications
import logging

router = APIRouter()
logger = logging.getLogger(__name__)
notifier = Notifications.from_config()


@router.post("/deploy", summary="Manual Deployment Endpoint")
def manual_deploy(deploy_request: DeployRequest, api_key: str = Depends(get_deploy_api_key)):
    repository_name = deploy_request.repository_name
    logger.info(f"Manual deployment triggered for repository: {repository_name}")

    try:
        result = deploy_repository(repository_name, notifier)
    except UnknownRepositoryError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {
        "repository": result.repository_name,
        "deploy_path": result.deploy_path,
        "exit_code": result.exit_code,
        "output": result.lines
    }
