from __future__ import annotations

from cachetools.func import lru_cache  # type: ignore

from overlay_deploy.infra.k8s.controller import (
    KubernetesController,
    KubernetesControllerSync,
)

BACKENDS: tuple[str, ...] = ("kr8s", "kubectl")


@lru_cache(maxsize=2)
def get_k8s_controller(backend: str = "kr8s") -> KubernetesController:
    """Get a KubernetesController for the requested backend.

    Args:
        backend: "kr8s" (default) or "kubectl"

    Returns:
        An instance of KubernetesController
    """
    if backend == "kubectl":
        from overlay_deploy.infra.k8s.kubectl_controller import KubectlController

        return KubectlController()
    if backend != "kr8s":
        raise ValueError(f"Unknown Kubernetes backend '{backend}'")

    from overlay_deploy.infra.k8s.kr8s_controller import Kr8sController

    return Kr8sController()


def get_k8s_controller_sync(backend: str = "kr8s") -> KubernetesControllerSync:
    """Get a synchronous wrapper for KubernetesController.

    Returns:
        An instance of KubernetesControllerSync wrapping the async controller
    """
    return KubernetesControllerSync(get_k8s_controller(backend))
