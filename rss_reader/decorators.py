"""Decorators applied to MCP tools before registration."""

import functools
import logging
from typing import Any, Awaitable, Callable, Dict

from rss_reader.errors import ConfigError, FetchError, StorageError

logger = logging.getLogger(__name__)

ToolFunc = Callable[..., Awaitable[Dict[str, Any]]]


def exception_handler(func: ToolFunc) -> ToolFunc:
    """Turn exceptions escaping a tool into ``{"success": False, "error": ...}``.

    The wrapped function keeps its signature so MCP can still introspect
    the parameters.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Dict[str, Any]:
        try:
            return await func(*args, **kwargs)
        except (ConfigError, FetchError, StorageError) as e:
            logger.warning("%s failed: %s", func.__name__, e)
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error("%s failed: %s", func.__name__, e, exc_info=True)
            return {"success": False, "error": f"{type(e).__name__}: {e}"}

    return wrapper
