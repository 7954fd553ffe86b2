"""Pydantic response models for the glbc REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class ResourceRef(BaseModel):
    """One member of a discovered graph."""

    kind: str
    name: str
    region: str = ""
    zone: str = ""
    version: str = Field(description="API version the resource was read at")
    self_link: str = ""


class GCLBResponse(BaseModel):
    vip: str
    features: list[str]
    resources: list[ResourceRef]


class DeletionResponse(BaseModel):
    vip: str
    deleted: bool
    remaining: list[str] = Field(default_factory=list)
    failures: list[str] = Field(default_factory=list)


class EndpointRef(BaseModel):
    instance: str = ""
    ip_address: str = ""
    port: int = 0
    health_states: list[str] = Field(default_factory=list)


class ZonalNEG(BaseModel):
    zone: str
    self_link: str = ""
    endpoints: list[EndpointRef]


class NEGEndpointsResponse(BaseModel):
    name: str
    negs: list[ZonalNEG]
