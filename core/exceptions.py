"""
MAMACARE Error Types

Fatal contract breaches in the pose pipeline. Degraded input (low or zero
keypoint confidence) is handled by the pipeline itself and never raised.
"""


class MamacareError(Exception):
    """Base class for MAMACARE errors."""


class ContractViolation(MamacareError, ValueError):
    """
    A caller broke the pipeline contract.

    Raised for keypoint cardinality changes, out-of-order frames and frames
    delivered after a session was finalized. The session cannot recover and
    must be restarted.
    """

    def __init__(self, message: str, session_id: str = None):
        self.session_id = session_id
        if session_id:
            message = f"[session {session_id}] {message}"
        super().__init__(message)
