# dependencies.py

import hmac
import logging

from fastapi import Header, HTTPException, status

import config

logger = logging.getLogger(__name__)


def get_deploy_api_key(api_key: str = Header(..., alias="X-API-Key")):
    if not config.DEPLOY_API_KEY:
        logger.warning("Manual deployment requested but no deploy_api_key is configured.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manual deployment is disabled")
    if not hmac.compare_digest(api_key, config.DEPLOY_API_KEY):
        logger.warning("Invalid API Key for manual deployment.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API Key")
    return api_key
