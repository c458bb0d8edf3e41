from polyglot_agent.engines.base import Engine
from polyglot_agent.engines.detect import Detector, get_detector
from polyglot_agent.engines.native import NativeEngine
from polyglot_agent.engines.python import PythonEngine
from polyglot_agent.engines.reasoning import ReasoningEngine

__all__ = [
    "Detector",
    "Engine",
    "NativeEngine",
    "PythonEngine",
    "ReasoningEngine",
    "get_detector",
]
