"""Durable transfer record store."""

from ccip_bridge.store.transfer_store import TransferStore, check_new_record, merge_changes

__all__ = ["TransferStore", "check_new_record", "merge_changes"]
