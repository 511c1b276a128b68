"""
REST client for the mock interview backend.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from ...config import API_TIMEOUT, INTERVIEW_MODE, TRAINING_MODE
from ...errors import TransportError
from ...session.models import PhraseBank, Question
from ...session.schemas import (
    FinalizeResponse, SessionCriteria, ValidateAnswerRequest, ValidateAnswerResponse
)

logger = logging.getLogger("backend_client")


@dataclass(frozen=True)
class ApiRoutes:
    """Endpoint paths for one session variant."""
    generate: str
    validate: str
    finalize: str
    audio_phrases: str = "/trainings/audio-phrases"


INTERVIEW_ROUTES = ApiRoutes(
    generate="/interview/generate",
    validate="/interview/questions/validate",
    finalize="/interview/finalize",
)

TRAINING_ROUTES = ApiRoutes(
    generate="/trainings/generate",
    validate="/trainings/questions/validate",
    finalize="/trainings/finalize",
)

ROUTES_BY_MODE = {
    INTERVIEW_MODE: INTERVIEW_ROUTES,
    TRAINING_MODE: TRAINING_ROUTES,
}


class BackendClient:
    """Blocking HTTP client; callers on the event loop wrap calls in a thread."""

    def __init__(self,
                 base_url: str,
                 auth_token: Optional[str] = None,
                 mode: str = INTERVIEW_MODE,
                 timeout: int = API_TIMEOUT,
                 session: Optional[requests.Session] = None):
        if mode not in ROUTES_BY_MODE:
            raise ValueError(f"Unknown session mode: {mode}")
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.mode = mode
        self.routes = ROUTES_BY_MODE[mode]
        self.timeout = timeout
        self._http = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = self._http.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("No response from %s: %s", url, e)
            raise TransportError(f"No response from server: {e}") from e

        if resp.status_code >= 400:
            message = self._error_message(resp)
            logger.error("Backend error %d on %s: %s", resp.status_code, path, message)
            raise TransportError(f"Backend error {resp.status_code}: {message}", status_code=resp.status_code)

        try:
            data = resp.json() if resp.content else {}
        except ValueError as e:
            raise TransportError(f"Backend returned invalid JSON for {path}") from e
        if not isinstance(data, dict):
            raise TransportError(f"Backend returned unexpected payload for {path}")

        # A 2xx response counts as success unless the body says otherwise
        data.setdefault("success", True)
        return data

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            body = resp.json()
            if isinstance(body, dict) and body.get("message"):
                return str(body["message"])
        except ValueError:
            pass
        return resp.text[:200]

    def generate_session(self, criteria: SessionCriteria) -> Tuple[list, Optional[str]]:
        """
        Generate the questions for a new session.

        Returns:
            Tuple of (questions, session_id)
        """
        data = self._request("POST", self.routes.generate, json=criteria.to_payload())
        if not data.get("success"):
            raise TransportError(data.get("message") or "Failed to generate session questions")
        questions = [Question.from_dict(q) for q in data.get("questions") or ()]
        session_id = data.get("sessionId") or data.get("interviewId")
        logger.info("Generated %d questions for session %s", len(questions), session_id)
        return questions, session_id

    def get_audio_phrases(self, language: str, voice_id: str) -> PhraseBank:
        """Fetch the welcome/outro phrases and the filler pools for a voice."""
        data = self._request(
            "GET", self.routes.audio_phrases,
            params={"language": language, "voiceId": voice_id},
        )
        if not data.get("success"):
            raise TransportError(data.get("message") or "No valid audio phrases found in the response")
        return PhraseBank.from_dict(data)

    def validate_answer(self, request: ValidateAnswerRequest) -> ValidateAnswerResponse:
        data = self._request("POST", self.routes.validate, json=request.to_payload())
        return ValidateAnswerResponse.from_dict(data)

    def finalize_session(self, session_id: str) -> FinalizeResponse:
        data = self._request("POST", self.routes.finalize, json={"sessionId": session_id})
        return FinalizeResponse.from_dict(data)

    def close(self) -> None:
        self._http.close()
