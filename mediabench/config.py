"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import List, Optional
import json

from dotenv import find_dotenv, load_dotenv

from mediabench.file import CHUNK_SIZE
from mediabench.transcode import FFMPEG_ARGS
from mediabench.transfer import CANONICAL_PROTOCOL, DEFAULT_PORT, TransferProtocol


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == '' or value.strip().lower() == 'none':
        return None
    return int(value)


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == '' or value.strip().lower() == 'none':
        return None
    return float(value)


@dataclass
class Config:
    """
    Benchmark Configuration.

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (MEDIABENCH_*)
    3. Config file (JSON)
    4. Default values
    """
    # Network
    host: str = '0.0.0.0'
    port: int = DEFAULT_PORT
    remote_ip: Optional[str] = None
    protocol: TransferProtocol = CANONICAL_PROTOCOL

    # Benchmark
    iterations: int = 5
    transcode_seconds: float = 30.0
    ffmpeg: str = 'ffmpeg'
    ffmpeg_args: List[str] = field(default_factory=lambda: list(FFMPEG_ARGS))

    # Performance
    chunk_size: int = CHUNK_SIZE
    max_connections: Optional[int] = None  # None = unbounded

    # Timeouts (seconds)
    connect_timeout: float = 10.0
    idle_timeout: Optional[float] = None

    # Logging
    log_level: str = 'INFO'

    def validate(self):
        """Raise ValueError on settings that cannot work."""
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.iterations < 1:
            raise ValueError(f"iterations must be at least 1, got {self.iterations}")
        if self.transcode_seconds <= 0:
            raise ValueError(f"transcode_seconds must be positive, got {self.transcode_seconds}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_connections is not None and self.max_connections < 1:
            raise ValueError(f"max_connections must be at least 1, got {self.max_connections}")

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv(find_dotenv(usecwd=True))

        config = cls()

        # Network
        config.host = os.getenv('MEDIABENCH_HOST', config.host)
        config.port = int(os.getenv('MEDIABENCH_PORT', config.port))
        config.remote_ip = os.getenv('MEDIABENCH_REMOTE_IP', config.remote_ip)
        config.protocol = TransferProtocol.parse(
            os.getenv('MEDIABENCH_PROTOCOL', config.protocol.value)
        )

        # Benchmark
        config.iterations = int(os.getenv('MEDIABENCH_ITERATIONS', config.iterations))
        config.transcode_seconds = float(
            os.getenv('MEDIABENCH_TRANSCODE_SECONDS', config.transcode_seconds)
        )
        config.ffmpeg = os.getenv('MEDIABENCH_FFMPEG', config.ffmpeg)

        # Performance
        config.chunk_size = int(os.getenv('MEDIABENCH_CHUNK_SIZE', config.chunk_size))
        if 'MEDIABENCH_MAX_CONNECTIONS' in os.environ:
            config.max_connections = _optional_int(os.environ['MEDIABENCH_MAX_CONNECTIONS'])

        # Timeouts
        config.connect_timeout = float(
            os.getenv('MEDIABENCH_CONNECT_TIMEOUT', config.connect_timeout)
        )
        if 'MEDIABENCH_IDLE_TIMEOUT' in os.environ:
            config.idle_timeout = _optional_float(os.environ['MEDIABENCH_IDLE_TIMEOUT'])

        # Logging
        config.log_level = os.getenv('MEDIABENCH_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Network
        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)
        config.remote_ip = data.get('remote_ip', config.remote_ip)
        if 'protocol' in data:
            config.protocol = TransferProtocol.parse(data['protocol'])

        # Benchmark
        config.iterations = data.get('iterations', config.iterations)
        config.transcode_seconds = data.get('transcode_seconds', config.transcode_seconds)
        config.ffmpeg = data.get('ffmpeg', config.ffmpeg)
        if 'ffmpeg_args' in data:
            config.ffmpeg_args = [str(arg) for arg in data['ffmpeg_args']]

        # Performance
        config.chunk_size = data.get('chunk_size', config.chunk_size)
        config.max_connections = data.get('max_connections', config.max_connections)

        # Timeouts
        config.connect_timeout = data.get('connect_timeout', config.connect_timeout)
        config.idle_timeout = data.get('idle_timeout', config.idle_timeout)

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'remote_ip': self.remote_ip,
            'protocol': self.protocol.value,
            'iterations': self.iterations,
            'transcode_seconds': self.transcode_seconds,
            'ffmpeg': self.ffmpeg,
            'ffmpeg_args': list(self.ffmpeg_args),
            'chunk_size': self.chunk_size,
            'max_connections': self.max_connections,
            'connect_timeout': self.connect_timeout,
            'idle_timeout': self.idle_timeout,
            'log_level': self.log_level,
        }


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()

    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    # Override with environment variables
    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for f in fields(Config):
        env_val = getattr(env_config, f.name)
        if env_val != getattr(defaults, f.name):
            setattr(config, f.name, env_val)

    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "0.0.0.0",
  "port": 1144,
  "remote_ip": "192.168.1.100",
  "protocol": "checksum",
  "iterations": 5,
  "transcode_seconds": 30.0,
  "ffmpeg": "ffmpeg",
  "chunk_size": 65536,
  "max_connections": 64,
  "connect_timeout": 10.0,
  "log_level": "INFO"
}
"""
