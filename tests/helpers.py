"""Test helper functions for image-transcoder.

Provides utilities for protocol compliance verification.

Example:
    from tests.helpers import assert_implements_protocol
    from image_transcoder.codecs.engine import CodecEngine

    def test_my_engine_implements_protocol():
        assert_implements_protocol(MyEngine(), CodecEngine)
"""

from __future__ import annotations

from typing import Any


def assert_implements_protocol(instance: object, protocol: type[Any]) -> None:
    """Assert that an instance implements a Protocol interface.

    Uses isinstance() (requires @runtime_checkable on the Protocol) and,
    on failure, lists the public protocol members the instance lacks.

    Args:
        instance: Object to check for protocol compliance.
        protocol: Protocol class decorated with @runtime_checkable.

    Raises:
        AssertionError: If instance doesn't implement protocol.
        TypeError: If protocol is not @runtime_checkable.

    Example:
        >>> assert_implements_protocol(PillowCodecEngine(), CodecEngine)
    """
    if isinstance(instance, protocol):
        return

    object_attrs = set(dir(object))
    protocol_methods = {
        attr
        for attr in set(dir(protocol)) - object_attrs
        if not attr.startswith("_")
    }
    missing = sorted(m for m in protocol_methods if not hasattr(instance, m))
    missing_str = ", ".join(missing) if missing else "unknown"
    raise AssertionError(
        f"{type(instance).__name__} does not implement {protocol.__name__}. "
        f"Missing: {missing_str}"
    )


def assert_all_implement_protocol(instances: list[Any], protocol: type[Any]) -> None:
    """Assert that all instances in a list implement a Protocol.

    Raises:
        AssertionError: Naming the index of the first non-compliant instance.
    """
    for i, instance in enumerate(instances):
        try:
            assert_implements_protocol(instance, protocol)
        except AssertionError as e:
            raise AssertionError(f"Instance at index {i}: {e}") from e
