"""
Numpy-backed implementations of the domain contracts.

Subpackages
-----------
- `tensor`: tensors and their data backings.
- `ops`: CPU, void and mock tensor operations.
- `graph`: operations, tapes, compute graphs, export, differentiation.
- `context`: execution configuration and contexts.
- `layers`, `models`, `optimizers`, `dsl`, `datasets`, `module`,
  `encoding`, `utils`: the module layer built on the above.
"""
