"""
Runtime helpers - Script evaluation against a target connection.
"""
from typing import TYPE_CHECKING, Any, Dict, Optional

from chrome_capture.core.errors import EvaluationError

if TYPE_CHECKING:
    from chrome_capture.cdp.connection import CDPConnection


def exception_text(details: Dict[str, Any]) -> str:
    """Best human-readable message from Runtime exceptionDetails."""
    exception = details.get("exception") or {}
    return exception.get("description") or details.get("text") or "Script threw an exception"


def remote_value(remote: Dict[str, Any]) -> Any:
    """Python value of a by-value RemoteObject (undefined becomes None)."""
    if "value" in remote:
        return remote["value"]
    if "unserializableValue" in remote:
        return remote["unserializableValue"]
    if remote.get("type") == "undefined":
        return None
    return remote.get("description")


async def evaluate_value(page: "CDPConnection", expression: str, *,
                         await_promise: bool = False, timeout: Optional[float] = None) -> Any:
    """Evaluate ``expression`` by value; raise EvaluationError if it throws."""
    params = {"expression": expression, "returnByValue": True}
    if await_promise:
        params["awaitPromise"] = True
    result = await page.send("Runtime.evaluate", params, timeout=timeout)
    if "exceptionDetails" in result:
        raise EvaluationError(
            exception_text(result["exceptionDetails"]),
            expression=expression if len(expression) <= 200 else expression[:200] + "…",
            target_id=page.target_id,
            method="Runtime.evaluate",
        )
    return remote_value(result.get("result", {}))
