"""Route handlers for the glbc REST API.

``GET /gclb/{vip}`` discovers the load balancer behind a VIP and remembers
the graph; ``GET /gclb/{vip}/deletion`` then checks that every member of
the remembered graph is gone, and forgets the graph once it is.
``GET /negs/{name}/endpoints`` lists the endpoints of a NEG in the given
zones.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from glbc.api.schemas import (
    DeletionResponse,
    EndpointRef,
    ErrorResponse,
    GCLBResponse,
    NEGEndpointsResponse,
    ResourceRef,
    ZonalNEG,
)
from glbc.errors import ResourcesNotDeletedError
from glbc.gclb import (
    GCLB,
    GCLBDeleteOptions,
    check_neg_deletion,
    check_resource_deletion,
    gclb_for_vip,
    network_endpoints_in_negs,
)
from glbc.gclb.validators import validators_by_name

_log = structlog.get_logger(component="api.routes")

# Oldest graphs are evicted past this many remembered VIPs.
MAX_STORED_GRAPHS = 256

router = APIRouter()


def _to_response(gclb: GCLB, features: list[str]) -> GCLBResponse:
    resources = [
        ResourceRef(
            kind=kind.value,
            name=key.name,
            region=key.region,
            zone=key.zone,
            version=obj.version.value,
            self_link=obj.self_link,
        )
        for kind, key, obj in gclb.resources()
    ]
    return GCLBResponse(vip=gclb.vip, features=features, resources=resources)


def _remember(graphs: dict[str, GCLB], vip: str, gclb: GCLB) -> None:
    graphs.pop(vip, None)
    graphs[vip] = gclb
    while len(graphs) > MAX_STORED_GRAPHS:
        graphs.pop(next(iter(graphs)))


@router.get("/gclb/{vip}", response_model=GCLBResponse)
async def get_gclb(
    request: Request,
    vip: str,
    features: Annotated[list[str], Query()] = [],  # noqa: B006
) -> GCLBResponse:
    names = features or ["Basic"]
    validators = validators_by_name(names)
    gclb = await gclb_for_vip(request.app.state.cloud, vip, validators)
    _remember(request.app.state.graphs, vip, gclb)
    return _to_response(gclb, names)


@router.get(
    "/gclb/{vip}/deletion",
    response_model=DeletionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_gclb_deletion(
    request: Request,
    vip: str,
    skip_default_backend: bool = False,
    negs_only: bool = False,
) -> DeletionResponse | JSONResponse:
    gclb: GCLB | None = request.app.state.graphs.get(vip)
    if gclb is None:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(
                error="GRAPH_NOT_FOUND",
                detail=f"no graph discovered for {vip}; call /gclb/{vip} first",
            ).model_dump(),
        )

    options = GCLBDeleteOptions(
        skip_default_backend=skip_default_backend,
        default_backend_service=request.app.state.default_backend_service,
    )
    check = check_neg_deletion if negs_only else check_resource_deletion
    try:
        await check(request.app.state.cloud, gclb, options)
    except ResourcesNotDeletedError as exc:
        _log.info("gclb_not_deleted", vip=vip, remaining=len(exc.remaining), failures=len(exc.failures))
        return DeletionResponse(vip=vip, deleted=False, remaining=exc.remaining, failures=exc.failures)
    if not negs_only:
        request.app.state.graphs.pop(vip, None)
    return DeletionResponse(vip=vip, deleted=True)


@router.get("/negs/{name}/endpoints", response_model=NEGEndpointsResponse)
async def get_neg_endpoints(
    request: Request,
    name: str,
    zones: Annotated[list[str], Query(min_length=1)],
) -> NEGEndpointsResponse:
    found = await network_endpoints_in_negs(request.app.state.cloud, name, zones)
    negs = [
        ZonalNEG(
            zone=key.zone,
            self_link=item.neg.self_link,
            endpoints=[
                EndpointRef(
                    instance=ep.network_endpoint.instance if ep.network_endpoint else "",
                    ip_address=ep.network_endpoint.ip_address if ep.network_endpoint else "",
                    port=ep.network_endpoint.port if ep.network_endpoint else 0,
                    health_states=[h.health_state for h in ep.healths],
                )
                for ep in item.endpoints
            ],
        )
        for key, item in found.items()
    ]
    return NEGEndpointsResponse(name=name, negs=negs)
