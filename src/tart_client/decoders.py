"""Decoders for tart command output."""

from __future__ import annotations

import json

from pydantic import TypeAdapter, ValidationError

from tart_client.exceptions import DecodeFailedError
from tart_client.models import VmDescriptor

_VM_LIST_ADAPTER: TypeAdapter[list[VmDescriptor]] = TypeAdapter(list[VmDescriptor])


def _utf8(stdout: bytes) -> str:
    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeFailedError(f"tart output is not valid UTF-8: {e}") from e


def decode_vm_list(stdout: bytes) -> list[VmDescriptor]:
    """Decode `tart list --format json` output.

    Args:
        stdout: Raw stdout of a successful invocation

    Returns:
        One VmDescriptor per record, in output order

    Raises:
        DecodeFailedError: Not UTF-8, not JSON, not an array, or a record
            missing required fields. Malformed output never decodes to an
            empty list.
    """
    text = _utf8(stdout)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeFailedError(f"Could not parse tart list output: {e}", context={"output": text[:512]}) from e

    if not isinstance(payload, list):
        raise DecodeFailedError(
            f"Unexpected tart list payload: expected a JSON array, got {type(payload).__name__}",
            context={"output": text[:512]},
        )

    try:
        return _VM_LIST_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise DecodeFailedError(f"Invalid VM record in tart list output: {e}", context={"output": text[:512]}) from e


def decode_text(stdout: bytes) -> str:
    """Decode plain-text output (ip, get) with surrounding whitespace trimmed."""
    return _utf8(stdout).strip()
