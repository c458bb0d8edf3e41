from polyglot_agent.memory.memory import Memory, estimate_tokens
from polyglot_agent.memory.store import MemoryStore, SQLiteMemoryStore

__all__ = ["Memory", "MemoryStore", "SQLiteMemoryStore", "estimate_tokens"]
