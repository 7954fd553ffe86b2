"""Helpers over ingress objects as delivered by the informer layer.

Ingresses are plain decoded API objects (``metadata`` / ``spec`` dicts), the
same shape the kubernetes_asyncio watch stream produces.
"""

from __future__ import annotations

from typing import Any

INGRESS_CLASS_KEY = "kubernetes.io/ingress.class"
SUPPRESS_FIREWALL_XPN_ERROR_KEY = "networking.gke.io/suppress-firewall-xpn-error"

GCE_INGRESS_CLASS = "gce"
GCE_L7ILB_INGRESS_CLASS = "gce-internal"
GCE_MULTI_CLUSTER_INGRESS_CLASS = "gce-multi-cluster"


def annotations(ing: dict[str, Any]) -> dict[str, str]:
    return (ing.get("metadata") or {}).get("annotations") or {}


def ingress_class(ing: dict[str, Any]) -> str:
    return annotations(ing).get(INGRESS_CLASS_KEY, "")


def namespaced_name(obj: dict[str, Any]) -> str:
    meta = obj.get("metadata") or {}
    return f"{meta.get('namespace', '')}/{meta.get('name', '')}"


def is_gce_ingress(ing: dict[str, Any], enable_l7_ilb: bool = False) -> bool:
    """True if the ingress is served by this controller.

    An ingress without a class belongs to GCE. Internal ingresses count only
    while L7-ILB support is enabled.
    """
    cls = ingress_class(ing)
    if cls in ("", GCE_INGRESS_CLASS):
        return True
    if cls == GCE_L7ILB_INGRESS_CLASS:
        return enable_l7_ilb
    return False


def is_gce_l7ilb_ingress(ing: dict[str, Any]) -> bool:
    return ingress_class(ing) == GCE_L7ILB_INGRESS_CLASS


def is_gce_multi_cluster_ingress(ing: dict[str, Any]) -> bool:
    return ingress_class(ing) == GCE_MULTI_CLUSTER_INGRESS_CLASS


def suppress_firewall_xpn_error(ing: dict[str, Any]) -> bool:
    return annotations(ing).get(SUPPRESS_FIREWALL_XPN_ERROR_KEY, "").lower() == "true"


def backend_service_names(ing: dict[str, Any]) -> set[str]:
    """Names of every service the ingress routes to (default backend included).

    Understands both the ``networking.k8s.io/v1`` backend shape
    (``service.name``) and the older ``serviceName`` field.
    """
    spec = ing.get("spec") or {}
    backends = [spec.get("defaultBackend") or spec.get("backend")]
    for rule in spec.get("rules") or []:
        for path in (rule.get("http") or {}).get("paths") or []:
            backends.append(path.get("backend"))

    names: set[str] = set()
    for backend in backends:
        if not backend:
            continue
        name = (backend.get("service") or {}).get("name") or backend.get("serviceName")
        if name:
            names.add(name)
    return names


def references_service(ing: dict[str, Any], svc: dict[str, Any]) -> bool:
    """True if *ing* routes to *svc* (same namespace, name referenced)."""
    ing_meta = ing.get("metadata") or {}
    svc_meta = svc.get("metadata") or {}
    if ing_meta.get("namespace", "") != svc_meta.get("namespace", ""):
        return False
    return svc_meta.get("name", "") in backend_service_names(ing)
