"""Type definitions for subscriber callbacks.

Subscribers may be plain callables or coroutine functions; the dispatcher
awaits whatever they return when it is awaitable.
"""

from collections.abc import Awaitable, Callable

Subscriber = Callable[..., Awaitable[None] | None]
