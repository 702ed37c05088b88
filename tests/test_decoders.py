"""Unit tests for tart output decoders."""

import json

import pytest

from tart_client.decoders import decode_text, decode_vm_list
from tart_client.exceptions import DecodeFailedError
from tart_client.models import VmState
from tests.conftest import vm_record


class TestDecodeVmList:
    """Tests for decode_vm_list()."""

    def test_records_in_order(self) -> None:
        records = [
            vm_record("a", "running", Disk=10, Size=5, SizeOnDisk=3),
            vm_record("b", Disk=50, Size=21, SizeOnDisk=18),
            vm_record("c", "suspended", Disk=100, Size=64, SizeOnDisk=0),
        ]
        vms = decode_vm_list(json.dumps(records).encode())
        assert [vm.name for vm in vms] == ["a", "b", "c"]
        assert [vm.state for vm in vms] == [VmState.RUNNING, VmState.STOPPED, VmState.SUSPENDED]
        assert [(vm.disk, vm.size, vm.size_on_disk) for vm in vms] == [(10, 5, 3), (50, 21, 18), (100, 64, 0)]

    def test_empty_array(self) -> None:
        assert decode_vm_list(b"[]") == []
        assert decode_vm_list(b"  []\n") == []

    @pytest.mark.parametrize(
        "payload",
        [
            b"",
            b"not json",
            b"{}",
            b'{"Name": "vm1"}',
            b"null",
            b'[{"Source": "local"}]',
            b'[{"Name": "vm1", "Source": "local", "Disk": "big"}]',
            b"\xff\xfe",
        ],
    )
    def test_malformed_output_fails(self, payload: bytes) -> None:
        """Malformed output never decodes to an empty list."""
        with pytest.raises(DecodeFailedError):
            decode_vm_list(payload)

    def test_error_keeps_output_excerpt(self) -> None:
        with pytest.raises(DecodeFailedError) as exc_info:
            decode_vm_list(b'{"oops": 1}')
        assert "oops" in exc_info.value.context["output"]


class TestDecodeText:
    """Tests for decode_text()."""

    def test_strips_whitespace(self) -> None:
        assert decode_text(b"  192.168.64.5\n") == "192.168.64.5"

    def test_invalid_utf8(self) -> None:
        with pytest.raises(DecodeFailedError):
            decode_text(b"\xff")
