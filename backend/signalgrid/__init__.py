"""
SignalGrid Traffic Coordination Engine

Core engine for adaptive intersection signal control.
It contains the flow analyzer, congestion forecaster, emergency
coordinator and intersection controller, plus the engine facade
that wires them together.
"""

__version__ = "1.0.0"
