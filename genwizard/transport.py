"""
In-process UI transport.

QueueRpc is a bidirectional request/response channel between a session
(running on an asyncio loop) and a UI that polls for work:

    session side                        UI side
    ------------                        -------
    await invoke('showPrompt', ...)  ->  next_request()
                                     <-  resolve(request_id, answers)
    notify('setPromptList', ...)     ->  next_request()   (no response)
    register_method(func)            <-  handle_request('back', params)

All methods must be called on the loop that owns the channel. Callers on
other threads (Flask workers) go through asyncio.run_coroutine_threadsafe
or loop.call_soon_threadsafe.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from genwizard.errors import TransportTimeoutError
from genwizard.utils.helpers import generate_request_id

logger = logging.getLogger(__name__)

# One hour: the UI waits on a human, not on the network
DEFAULT_RESPONSE_TIMEOUT = 3600.0


@dataclass(frozen=True)
class RpcRequest:
    """
    Outgoing message from the session to the UI.

    Attributes:
        request_id: Identifier to resolve the request with
        method: UI method name ('showPrompt', 'setPromptList', ...)
        params: Positional parameters
        expects_response: False for notifications
    """
    request_id: str
    method: str
    params: List[Any] = field(default_factory=list)
    expects_response: bool = True

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.request_id,
            'method': self.method,
            'params': self.params,
            'expectsResponse': self.expects_response
        }


class QueueRpc:
    """asyncio request/response channel with method registration"""

    def __init__(self, response_timeout: float = DEFAULT_RESPONSE_TIMEOUT):
        self.response_timeout = response_timeout
        self._methods: Dict[str, Callable] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._outbox: asyncio.Queue = asyncio.Queue()

    def set_response_timeout(self, seconds: float) -> None:
        self.response_timeout = seconds

    def register_method(self, func: Callable, name: Optional[str] = None) -> None:
        """
        Expose func to the UI under name (defaults to func.__name__).
        """
        self._methods[name or func.__name__] = func

    @property
    def method_names(self) -> List[str]:
        return sorted(self._methods)

    async def invoke(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Send a request to the UI and wait for its response.

        Args:
            method: UI method name
            params: Positional parameters

        Returns:
            Whatever the UI resolved the request with

        Raises:
            TransportTimeoutError: If the UI doesn't respond in time
            RuntimeError: If the UI rejected the request
        """
        request = RpcRequest(generate_request_id(), method, list(params or []))
        future = asyncio.get_running_loop().create_future()
        self._pending[request.request_id] = future
        self._outbox.put_nowait(request)

        try:
            return await asyncio.wait_for(future, timeout=self.response_timeout)
        except asyncio.TimeoutError as e:
            raise TransportTimeoutError(
                f"UI did not respond to '{method}' within {self.response_timeout} seconds"
            ) from e
        finally:
            self._pending.pop(request.request_id, None)

    def notify(self, method: str, params: Optional[List[Any]] = None) -> None:
        """Send a one-way message to the UI."""
        request = RpcRequest(generate_request_id(), method, list(params or []), expects_response=False)
        self._outbox.put_nowait(request)

    async def next_request(self, timeout: Optional[float] = None) -> Optional[RpcRequest]:
        """
        Next outgoing message for the UI.

        Requests whose invoker has gone away (cancelled run) are skipped.

        Returns:
            RpcRequest, or None if nothing arrived within timeout
        """
        while True:
            try:
                request = await asyncio.wait_for(self._outbox.get(), timeout=timeout)
            except asyncio.TimeoutError:
                return None
            if request.expects_response and request.request_id not in self._pending:
                logger.debug(f"Dropping abandoned '{request.method}' request {request.request_id}")
                continue
            return request

    def resolve(self, request_id: str, result: Any) -> bool:
        """
        Answer a pending request.

        Returns:
            False if the request is unknown or no longer pending
        """
        future = self._pending.get(request_id)
        if future is None or future.done():
            logger.warning(f"Response for unknown or finished request {request_id} ignored")
            return False
        future.set_result(result)
        return True

    def reject(self, request_id: str, message: str) -> bool:
        future = self._pending.get(request_id)
        if future is None or future.done():
            return False
        future.set_exception(RuntimeError(message))
        return True

    def has_pending(self) -> bool:
        return bool(self._pending)

    async def handle_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Dispatch a UI-initiated call to a registered method.

        Raises:
            KeyError: If no method is registered under that name
        """
        if method not in self._methods:
            raise KeyError(f"No method '{method}' registered")
        result = self._methods[method](*(params or []))
        if inspect.isawaitable(result):
            result = await result
        return result
