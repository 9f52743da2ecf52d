"""
Store configuration from environment.

Environment Variables:
    CKPT_STORE_TYPE: Backend (memory, file, s3) - default: file
    CKPT_STORE_PATH: Directory for the file backend - default: /tmp/checkpointing/store
    CKPT_S3_BUCKET: Bucket for the s3 backend - default: checkpointing
    CKPT_S3_PREFIX: Object key prefix - default: checkpoints
    CKPT_S3_ENDPOINT: Custom endpoint (MinIO, localstack) - default: unset
    CKPT_S3_REGION: AWS region - default: us-east-1
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from .checkpoint.store import CheckpointStore
from .kv.file_store import FileKVStore
from .kv.memory import MemoryKVStore
from .kv.s3_store import S3KVStore
from .kv.store import KVStore

DEFAULT_STORE_PATH = "/tmp/checkpointing/store"
STORE_TYPES = ("memory", "file", "s3")


@dataclass
class StoreConfig:
    store_type: str = "file"
    path: str = DEFAULT_STORE_PATH
    s3_bucket: str = "checkpointing"
    s3_prefix: str = "checkpoints"
    s3_endpoint: Optional[str] = None
    s3_region: str = "us-east-1"

    @staticmethod
    def from_env() -> "StoreConfig":
        return StoreConfig(
            store_type=os.getenv("CKPT_STORE_TYPE", "file").lower(),
            path=os.getenv("CKPT_STORE_PATH", DEFAULT_STORE_PATH),
            s3_bucket=os.getenv("CKPT_S3_BUCKET", "checkpointing"),
            s3_prefix=os.getenv("CKPT_S3_PREFIX", "checkpoints"),
            s3_endpoint=os.getenv("CKPT_S3_ENDPOINT") or None,
            s3_region=os.getenv("CKPT_S3_REGION", "us-east-1"),
        )

    def with_path(self, path: Optional[str]) -> "StoreConfig":
        if path is None:
            return self
        return replace(self, path=path)


def open_kv_store(config: StoreConfig) -> KVStore:
    """
    Build the key-value backend named by config.

    Raises:
        ValueError: If store_type is unknown
        StoreError: If the backend cannot be opened
    """
    if config.store_type == "memory":
        return MemoryKVStore()
    if config.store_type == "file":
        return FileKVStore(config.path)
    if config.store_type == "s3":
        return S3KVStore(
            bucket=config.s3_bucket,
            prefix=config.s3_prefix,
            endpoint_url=config.s3_endpoint,
            region=config.s3_region,
        )
    raise ValueError(
        f"unknown store type {config.store_type!r} (expected one of {', '.join(STORE_TYPES)})"
    )


def open_checkpoint_store(config: Optional[StoreConfig] = None) -> CheckpointStore:
    """Open a CheckpointStore over the configured backend (env if config is None)."""
    if config is None:
        config = StoreConfig.from_env()
    return CheckpointStore(open_kv_store(config))
