"""
Shape rules shared by the kernels, the void backend and operation inference.

Every function takes plain dimension tuples and either returns the output
dimensions or raises `ShapeMismatchError` naming the operation and operand
shapes. Dimensions may be None (unknown) when called from graph-level shape
inference; unknown dimensions are propagated and never checked.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple, Union

from ...domain._errors import ShapeMismatchError

Dim = Optional[int]
Dims = Tuple[Dim, ...]
IntPair = Union[int, Tuple[int, int]]


def _pair(v: IntPair) -> Tuple[int, int]:
    """
    Normalize an integer or pair into a 2-tuple.

    Used for convolution and pooling hyperparameters such as `stride` and
    `padding`, which may be given as one integer or a (height, width) pair.
    """
    if isinstance(v, (tuple, list)):
        if len(v) != 2:
            raise ValueError(f"Expected an int or a pair, got {v!r}")
        return int(v[0]), int(v[1])
    return int(v), int(v)


def normalize_dim(dim: int, rank: int, op: str) -> int:
    resolved = dim + rank if dim < 0 else dim
    if not 0 <= resolved < rank:
        raise ShapeMismatchError(op, [], f"dim {dim} is out of range for rank {rank}")
    return resolved


def broadcast_shapes(op: str, a: Dims, b: Dims) -> Dims:
    """
    Numpy-style broadcast of two shapes.
    """
    out: list[Dim] = []
    for i in range(1, max(len(a), len(b)) + 1):
        da = a[-i] if i <= len(a) else 1
        db = b[-i] if i <= len(b) else 1
        if da is None or db is None:
            out.append(db if da == 1 else da if db == 1 else None)
        elif da == db or db == 1:
            out.append(da)
        elif da == 1:
            out.append(db)
        else:
            raise ShapeMismatchError(op, [a, b], f"dimension {-i} differs ({da} vs {db})")
    return tuple(reversed(out))


def matmul_shape(a: Dims, b: Dims) -> Dims:
    """
    Output shape of ``a @ b`` with numpy's 1-D and batched semantics.
    """
    if not a or not b:
        raise ShapeMismatchError("matmul", [a, b], "operands must have rank >= 1")
    a2 = a if len(a) >= 2 else (1,) + a
    b2 = b if len(b) >= 2 else b + (1,)
    inner_a, inner_b = a2[-1], b2[-2]
    if inner_a is not None and inner_b is not None and inner_a != inner_b:
        raise ShapeMismatchError(
            "matmul", [a, b], f"inner dimensions differ ({inner_a} vs {inner_b})"
        )
    batch = broadcast_shapes("matmul", a2[:-2], b2[:-2])
    out = batch + (a2[-2], b2[-1])
    if len(b) == 1:
        out = out[:-1]
    if len(a) == 1:
        out = out[:-2] + out[-1:] if len(b) != 1 else out[:-1]
    return out


def transpose_shape(a: Dims) -> Dims:
    """Swap the last two axes; rank < 2 is unchanged."""
    if len(a) < 2:
        return a
    return a[:-2] + (a[-1], a[-2])


def reshape_shape(src: Dims, new_shape: Sequence[int]) -> Dims:
    """
    Resolve a reshape target, inferring at most one ``-1`` dimension.
    """
    target = [int(d) for d in new_shape]
    if target.count(-1) > 1:
        raise ShapeMismatchError("reshape", [src, tuple(target)], "only one -1 is allowed")
    if any(d < -1 for d in target):
        raise ShapeMismatchError("reshape", [src, tuple(target)], "negative dimension")
    if any(d is None for d in src):
        return tuple(None if d == -1 else d for d in target)
    volume = 1
    for d in src:
        volume *= d
    known = 1
    for d in target:
        if d != -1:
            known *= d
    if -1 in target:
        if known == 0 or volume % known:
            raise ShapeMismatchError(
                "reshape", [src, tuple(target)], f"cannot infer -1 for volume {volume}"
            )
        target[target.index(-1)] = volume // known
    elif known != volume:
        raise ShapeMismatchError(
            "reshape", [src, tuple(target)], f"volume {volume} != {known}"
        )
    return tuple(target)


def flatten_shape(src: Dims, start_dim: int = 0, end_dim: int = -1) -> Dims:
    """
    Merge axes ``start_dim..end_dim`` (inclusive) into one.
    """
    if not src:
        return (1,)
    rank = len(src)
    start = normalize_dim(start_dim, rank, "flatten")
    end = normalize_dim(end_dim, rank, "flatten")
    if start > end:
        raise ShapeMismatchError("flatten", [src], f"start_dim {start_dim} > end_dim {end_dim}")
    merged: Dim = 1
    for d in src[start : end + 1]:
        merged = None if d is None or merged is None else merged * d
    return src[:start] + (merged,) + src[end + 1 :]


def squeeze_shape(src: Dims, dim: Optional[int] = None) -> Dims:
    """
    Remove size-1 axes (all of them, or only `dim`).
    """
    if dim is None:
        return tuple(d for d in src if d != 1)
    axis = normalize_dim(dim, len(src), "squeeze")
    if src[axis] not in (1, None):
        raise ShapeMismatchError("squeeze", [src], f"dim {dim} has size {src[axis]}, not 1")
    return src[:axis] + src[axis + 1 :]


def unsqueeze_shape(src: Dims, dim: int) -> Dims:
    """Insert a size-1 axis at `dim` (``-rank - 1 <= dim <= rank``)."""
    axis = normalize_dim(dim, len(src) + 1, "unsqueeze")
    return src[:axis] + (1,) + src[axis:]


def concat_shape(shapes: Sequence[Dims], dim: int = 0) -> Dims:
    """
    Output shape of concatenating `shapes` along `dim`.
    """
    if not shapes:
        raise ShapeMismatchError("concat", [], "no operands")
    rank = len(shapes[0])
    if rank == 0:
        raise ShapeMismatchError("concat", shapes, "cannot concatenate scalars")
    axis = normalize_dim(dim, rank, "concat")
    total: Dim = 0
    for s in shapes:
        if len(s) != rank:
            raise ShapeMismatchError("concat", shapes, "operands differ in rank")
        for i, (d, ref) in enumerate(zip(s, shapes[0])):
            if i != axis and d is not None and ref is not None and d != ref:
                raise ShapeMismatchError("concat", shapes, f"dimension {i} differs")
        total = None if total is None or s[axis] is None else total + s[axis]
    return shapes[0][:axis] + (total,) + shapes[0][axis + 1 :]


def split_shapes(src: Dims, split_size: int, dim: int = 0) -> list[Dims]:
    """
    Shapes of the chunks produced by splitting `src` every `split_size`
    positions along `dim` (the last chunk may be smaller).
    """
    if split_size <= 0:
        raise ShapeMismatchError("split", [src], f"split_size must be positive, got {split_size}")
    axis = normalize_dim(dim, len(src), "split")
    size = src[axis]
    if size is None:
        raise ShapeMismatchError("split", [src], "cannot split an unknown dimension")
    return [
        src[:axis] + (min(split_size, size - start),) + src[axis + 1 :]
        for start in range(0, size, split_size)
    ]


def reduce_shape(src: Dims, dim: Optional[int] = None, keepdim: bool = False) -> Dims:
    """Output shape of a reduction over `dim` (all axes when None)."""
    if dim is None:
        return tuple(1 for _ in src) if keepdim else ()
    axis = normalize_dim(dim, len(src), "reduce")
    if keepdim:
        return src[:axis] + (1,) + src[axis + 1 :]
    return src[:axis] + src[axis + 1 :]


def _window_out(size: Dim, kernel: Dim, stride: int, padding: int, dilation: int = 1) -> Dim:
    if size is None or kernel is None:
        return None
    span = dilation * (kernel - 1) + 1
    return (size + 2 * padding - span) // stride + 1


def conv2d_shape(
    x: Dims,
    w: Dims,
    stride: IntPair = 1,
    padding: IntPair = 0,
    dilation: IntPair = 1,
    groups: int = 1,
) -> Dims:
    """
    Output shape of an NCHW convolution.

    `x` is ``(N, C_in, H, W)`` and `w` is ``(C_out, C_in / groups, K_h, K_w)``.
    """
    if len(x) != 4 or len(w) != 4:
        raise ShapeMismatchError("conv2d", [x, w], "expected 4-D input and weight")
    n, c_in, h, wd = x
    c_out, c_per_group, k_h, k_w = w
    if groups <= 0:
        raise ShapeMismatchError("conv2d", [x, w], f"groups must be positive, got {groups}")
    if c_in is not None and c_per_group is not None and c_in != c_per_group * groups:
        raise ShapeMismatchError(
            "conv2d", [x, w], f"in_channels {c_in} != {c_per_group} * groups {groups}"
        )
    if c_out is not None and c_out % groups:
        raise ShapeMismatchError("conv2d", [x, w], f"out_channels {c_out} not divisible by groups")
    s_h, s_w = _pair(stride)
    p_h, p_w = _pair(padding)
    d_h, d_w = _pair(dilation)
    h_out = _window_out(h, k_h, s_h, p_h, d_h)
    w_out = _window_out(wd, k_w, s_w, p_w, d_w)
    if (h_out is not None and h_out <= 0) or (w_out is not None and w_out <= 0):
        raise ShapeMismatchError("conv2d", [x, w], "kernel larger than padded input")
    return (n, c_out, h_out, w_out)


def pool2d_shape(
    x: Dims,
    kernel_size: IntPair,
    stride: Optional[IntPair] = None,
    padding: IntPair = 0,
) -> Dims:
    """
    Output shape of an NCHW 2-D pooling window.
    """
    if len(x) != 4:
        raise ShapeMismatchError("max_pool2d", [x], "expected 4-D input")
    k_h, k_w = _pair(kernel_size)
    s_h, s_w = _pair(kernel_size if stride is None else stride)
    p_h, p_w = _pair(padding)
    if p_h * 2 > k_h or p_w * 2 > k_w:
        raise ShapeMismatchError("max_pool2d", [x], "padding must be at most half the kernel")
    h_out = _window_out(x[2], k_h, s_h, p_h)
    w_out = _window_out(x[3], k_w, s_w, p_w)
    if (h_out is not None and h_out <= 0) or (w_out is not None and w_out <= 0):
        raise ShapeMismatchError("max_pool2d", [x], "window larger than padded input")
    return (x[0], x[1], h_out, w_out)
