"""SQLite MCP Server Package"""

__version__ = '2.0.0'

from .config import Settings
from .dispatcher import Dispatcher, ResultEnvelope
from .resolver import ConnectionResolver, ResolverPool
from .tools_manifest import TOOLSET, ToolDefinition

__all__ = [
    'ConnectionResolver',
    'Dispatcher',
    'ResolverPool',
    'ResultEnvelope',
    'Settings',
    'TOOLSET',
    'ToolDefinition',
]
