"""Common utility functions used across backend modules."""

import json
import logging
import socket
from typing import Any, Dict, Optional
from urllib import error, request

from models.exceptions import CollaboratorError


logger = logging.getLogger(__name__)

USER_AGENT = "CreditDecisionEngine/1.0"


def post_json(
    url: str,
    payload: Dict[str, Any],
    timeout_sec: float,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """POST a JSON body and parse the JSON response.

    Raises:
        CollaboratorError: On HTTP errors, network errors, timeouts or a non-JSON body.
    """
    req = request.Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
            **(headers or {}),
        },
    )
    try:
        with request.urlopen(req, timeout=timeout_sec) as response:
            body = response.read().decode("utf-8")
            if not body:
                return {}
            return json.loads(body)
    except error.HTTPError as exc:
        body = ""
        try:
            body = exc.read().decode("utf-8")[:500]
        except Exception:
            body = ""
        logger.warning("Collaborator request failed url=%s status=%s", url, exc.code)
        raise CollaboratorError("HTTP {0} from {1}: {2}".format(exc.code, url, body))
    except (error.URLError, socket.timeout, OSError) as exc:
        logger.warning("Collaborator network error url=%s error=%s", url, exc)
        raise CollaboratorError("Network error calling {0}: {1}".format(url, exc))
    except ValueError as exc:
        logger.warning("Collaborator returned non-JSON body url=%s", url)
        raise CollaboratorError("Invalid JSON from {0}: {1}".format(url, exc))
