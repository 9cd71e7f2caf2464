"""Utility functions for the Kubernetes infrastructure layer.

Provides helper functions for running async code in sync contexts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a blocking sync context.

    This is useful for calling async KubernetesController methods
    from the synchronous deployment pipeline.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Example:
        from overlay_deploy.infra.k8s import KubectlController, run_sync

        controller = KubectlController()
        exists = run_sync(controller.namespace_exists("my-namespace"))
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop, create a new one
        return asyncio.run(coro)
    else:
        if loop.is_running():
            # Run in a separate thread so the caller's loop is not blocked
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor() as pool:
                future = pool.submit(asyncio.run, coro)
                return future.result()
        return loop.run_until_complete(coro)
