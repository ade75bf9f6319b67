import logging
from typing import Dict, Optional

import requests
from pydantic import SecretStr

from .. import constants
from ..exceptions import ReportError

logger = logging.getLogger(__name__)


def build_headers(token: Optional[SecretStr] = None) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if token is not None and token.get_secret_value():
        headers["Authorization"] = f"Bearer {token.get_secret_value()}"
    return headers


def send_project_info(
    endpoint: str,
    project_info: str,
    token: Optional[SecretStr] = None,
    timeout: Optional[float] = None,
) -> None:
    """
    POST the raw project info text to `endpoint` as `{"buildInfo": <text>}`.

    Raises:
        ReportError: the request failed or the endpoint answered with a non-2xx status
    """
    payload = {constants.REPORT_PAYLOAD_KEY: project_info}
    try:
        response = requests.post(endpoint, json=payload, headers=build_headers(token), timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to send project info to API: {e}")
        raise ReportError(f"Failed to send project info to '{endpoint}': {e}") from e
    logger.info(f"Project info sent to '{endpoint}' (HTTP {response.status_code})")
