from __future__ import annotations
from stonks.config import Settings
from stonks.exchanges.alpaca.gateway import AlpacaGateway
from stonks.exchanges.alpaca.rest import AlpacaREST
from stonks.exchanges.base.gateway import BrokerGateway

def build_rest(settings: Settings) -> AlpacaREST:
    return AlpacaREST(
        settings.api_key_id,
        settings.api_secret_key,
        base_url=settings.api_base_url,
        data_url=settings.data_url,
    )

def build_gateway(name: str, settings: Settings) -> BrokerGateway:
    name = name.lower()
    if name == "alpaca":
        return AlpacaGateway(
            rest=build_rest(settings),
            api_key_id=settings.api_key_id,
            api_secret_key=settings.api_secret_key,
            trading_base_url=settings.api_base_url,
            data_stream_url=settings.data_stream_url,
            dry_run=settings.dry_run,
        )
    raise ValueError(f"Unknown broker: {name}")
