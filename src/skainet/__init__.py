"""
skainet: a tensor and compute-graph framework for scripting neural networks.
"""

__version__ = "0.1.0"
