"""
Helpers for constructing MQTT clients that work across paho-mqtt 1.x and 2.x.

The 2.x releases add a callback API version flag; we pin the legacy
v3.1.1 callback signature (``on_connect(client, userdata, flags, rc)``)
so the connection manager's handlers behave the same on both.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict

import paho.mqtt.client as mqtt


def generate_client_id(prefix: str) -> str:
    """Return ``<prefix>_<8 hex chars>``; unique per session so two processes never kick each other off."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def create_mqtt_client(
    client_id: str = "",
    *,
    clean_session: bool = True,
    transport: str = "tcp",
    **kwargs: Any,
) -> mqtt.Client:
    """
    Build an MQTT client that is forward-compatible with paho-mqtt 2.x and
    gracefully degrades when running with 1.x.

    Args:
        client_id: Client identifier.
        clean_session: Ask the broker to discard any previous session state.
        transport: ``"tcp"`` or ``"websockets"``.
        kwargs: Extra keyword arguments forwarded to the client constructor.
    """
    client_kwargs: Dict[str, Any] = {
        "client_id": client_id or "",
        "clean_session": clean_session,
        "transport": transport,
    }

    # Keep MQTT v3.1.1 protocol by default for broker compatibility.
    client_kwargs["protocol"] = kwargs.pop("protocol", getattr(mqtt, "MQTTv311", 4))
    client_kwargs.update(kwargs)

    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version is not None:
        legacy = getattr(callback_api_version, "VERSION1", None)
        if legacy is not None:
            client_kwargs["callback_api_version"] = legacy

    try:
        return mqtt.Client(**client_kwargs)
    except TypeError:
        # Older paho versions do not support callback_api_version; retry with basics.
        client_kwargs.pop("callback_api_version", None)
        return mqtt.Client(**client_kwargs)
