"""
HTTP clients for the local prover service and the remote Brevis gateway.

Both services are treated as opaque JSON request/response endpoints. The
prover turns a ProofRequest into a proof; the gateway accepts the request
and proof, relays the result to the destination chain, and reports status.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable

import requests

from .proof_request import ProofRequest

logger = logging.getLogger(__name__)

PROVE_PATH = "/zk/prove"
SUBMIT_PATH = "/sdk/submit"
STATUS_PATH = "/sdk/query_status"

# Gateway statuses that end polling
STATUS_DONE = "done"
STATUS_FAILED = ("failed", "expired")


class ErrCode(IntEnum):
    UNDEFINED = 0
    INVALID_INPUT = 1
    INVALID_CUSTOM_INPUT = 2
    FAILED_TO_PROVE = 3


class BrevisError(Exception):
    """Base class for prover and gateway failures."""


class ProverError(BrevisError):
    """The prover rejected the request or failed to produce a proof."""

    def __init__(self, code: ErrCode, msg: str):
        super().__init__(f"{code.name}: {msg}")
        self.code = code
        self.msg = msg


class GatewayError(BrevisError):
    """The gateway rejected a submission or reported a failed query."""


class GatewayTimeout(GatewayError):
    """The query did not settle before the wait deadline."""


@dataclass(frozen=True)
class ProveResponse:
    proof: str = ""
    circuit_info: dict[str, Any] = field(default_factory=dict)
    err: ProverError | None = None

    @property
    def has_err(self) -> bool:
        return self.err is not None

    def raise_for_error(self) -> None:
        if self.err is not None:
            raise self.err

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ProveResponse":
        err = data.get("err")
        if err:
            try:
                code = ErrCode(int(err.get("code", 0)))
            except ValueError:
                code = ErrCode.UNDEFINED
            return cls(err=ProverError(code, err.get("msg", "")))
        return cls(proof=data.get("proof", ""), circuit_info=data.get("circuit_info") or {})


@dataclass(frozen=True)
class GatewaySubmission:
    query_key: str
    fee: int


def _describe_prover_error(err: ProverError) -> str:
    if err.code == ErrCode.INVALID_INPUT:
        return f"invalid receipt/storage/transaction input: {err.msg}"
    if err.code == ErrCode.INVALID_CUSTOM_INPUT:
        return f"invalid custom input: {err.msg}"
    if err.code == ErrCode.FAILED_TO_PROVE:
        return f"failed to prove: {err.msg}"
    return f"prover error: {err.msg}"


class ProverClient:
    """Client for the prover service started alongside the circuit."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 600.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def prove(self, request: ProofRequest) -> ProveResponse:
        """
        Generate a proof for request.

        Returns:
            ProveResponse; check has_err or call raise_for_error()

        Raises:
            requests.RequestException: on transport or HTTP status failures
        """
        response = self.session.post(
            f"{self.base_url}{PROVE_PATH}",
            json=request.to_dict(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        result = ProveResponse.from_json(response.json())
        if result.err is not None:
            logger.error(_describe_prover_error(result.err))
        return result


class GatewayClient:
    """Client for the gateway that verifies and relays proofs on-chain."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        poll_interval: float = 15.0,
        wait_timeout: float = 3600.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.wait_timeout = wait_timeout
        self._sleep = sleep
        self._clock = clock

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if data.get("err"):
            raise GatewayError(f"{path}: {data['err']}")
        return data

    def submit(
        self,
        request: ProofRequest,
        proof: ProveResponse,
        src_chain_id: int,
        dst_chain_id: int,
        option: int = 0,
        partner_key: str = "",
        callback_address: str = "",
    ) -> GatewaySubmission:
        """
        Submit a request and its proof for verification on dst_chain_id.

        The partner key is only needed for the partner flow; leave empty otherwise.
        """
        proof.raise_for_error()
        data = self._post(SUBMIT_PATH, {
            "request": request.to_dict(),
            "proof": proof.proof,
            "circuit_info": proof.circuit_info,
            "src_chain_id": src_chain_id,
            "dst_chain_id": dst_chain_id,
            "option": option,
            "api_key": partner_key,
            "callback_addr": callback_address,
        })
        try:
            return GatewaySubmission(query_key=str(data["query_key"]), fee=int(data.get("fee", 0)))
        except (KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Malformed submit response: {data}") from exc

    def get_status(self, query_key: str, dst_chain_id: int) -> dict[str, Any]:
        return self._post(STATUS_PATH, {"query_key": query_key, "dst_chain_id": dst_chain_id})

    def wait(self, query_key: str, dst_chain_id: int) -> dict[str, Any]:
        """
        Poll until the query is settled on the destination chain.

        Raises:
            GatewayError: if the gateway reports the query failed
            GatewayTimeout: if wait_timeout elapses first
        """
        deadline = self._clock() + self.wait_timeout
        while True:
            status = self.get_status(query_key, dst_chain_id)
            state = str(status.get("status", "")).lower()
            if state == STATUS_DONE:
                logger.info("Query %s settled: %s", query_key, status.get("tx_hash", ""))
                return status
            if state in STATUS_FAILED:
                raise GatewayError(f"Query {query_key} {state}: {status}")
            if self._clock() >= deadline:
                raise GatewayTimeout(
                    f"Query {query_key} not settled after {self.wait_timeout:.0f}s (last status {state!r})"
                )
            logger.debug("Query %s status %r, retrying in %.0fs", query_key, state, self.poll_interval)
            self._sleep(self.poll_interval)
