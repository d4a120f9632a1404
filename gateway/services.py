"""
Process-wide collaborators of the gateway: completion client, identity
provider and sales event store.

Built lazily from the environment on first use; tests install their own with
set_services().
"""
from dataclasses import dataclass
from typing import Optional

from logging_setup import Component, get_logger
from sales_events.store import EventStore, InMemoryEventStore, SupabaseEventStore
from suggestion_pipeline.completion import CompletionClient, OpenAICompletionClient
from suggestion_pipeline.config import PipelineConfig
from suggestion_pipeline.streaming import PacingStrategy

from .auth import IdentityProvider, SupabaseIdentityProvider
from .config import GatewayConfig

logger = get_logger(Component.GATEWAY)


@dataclass
class Services:
    pipeline_config: PipelineConfig
    gateway_config: GatewayConfig
    completion_client: CompletionClient
    event_store: EventStore
    identity_provider: Optional[IdentityProvider] = None
    pacing: Optional[PacingStrategy] = None


def build_services(
    pipeline_config: Optional[PipelineConfig] = None,
    gateway_config: Optional[GatewayConfig] = None,
) -> Services:
    gateway_config = gateway_config or GatewayConfig.from_env()
    pipeline_config = pipeline_config or PipelineConfig.from_env()

    if gateway_config.supabase_enabled:
        event_store: EventStore = SupabaseEventStore(
            gateway_config.supabase_url, gateway_config.supabase_service_key
        )
        identity_provider: Optional[IdentityProvider] = SupabaseIdentityProvider(
            gateway_config.supabase_url, gateway_config.supabase_service_key
        )
    else:
        logger.warning("Supabase not configured, using in-memory event store and demo-only auth")
        event_store = InMemoryEventStore()
        identity_provider = None

    return Services(
        pipeline_config=pipeline_config,
        gateway_config=gateway_config,
        completion_client=OpenAICompletionClient(
            pipeline_config.openai_api_key, pipeline_config.openai_base_url
        ),
        event_store=event_store,
        identity_provider=identity_provider,
    )


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]) -> None:
    global _services
    _services = services


_services: Optional[Services] = None
