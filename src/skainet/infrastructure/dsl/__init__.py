from ._network_builder import ACTIVATIONS, NetworkBuilder, NetworkDefinitionError, network

__all__ = ["ACTIVATIONS", "NetworkBuilder", "NetworkDefinitionError", "network"]
