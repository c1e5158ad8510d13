"""
CPU reference Conv2D kernels.

This module provides reference implementations of 2D convolution forward and
backward passes using NumPy. The kernels loop explicitly over batch, output
channels and output positions; each step is a vectorized patch reduction.

Tensor layout
-------------
All tensors follow the NCHW layout:
- N: batch size
- C: channels
- H: height
- W: width

Weights are laid out as ``(C_out, C_in / groups, K_h, K_w)``.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ._shape_inference import IntPair, _pair, conv2d_shape


def conv2d_forward_cpu(
    x: np.ndarray,
    w: np.ndarray,
    b: Optional[np.ndarray],
    stride: IntPair = 1,
    padding: IntPair = 0,
    dilation: IntPair = 1,
    groups: int = 1,
) -> np.ndarray:
    """
    Compute the forward pass of a 2D convolution.

    Parameters
    ----------
    x : np.ndarray
        Input of shape (N, C_in, H, W).
    w : np.ndarray
        Kernel of shape (C_out, C_in / groups, K_h, K_w).
    b : Optional[np.ndarray]
        Optional bias of shape (C_out,).
    stride, padding, dilation : int or tuple[int, int]
        Window hyperparameters.
    groups : int
        Number of channel groups.

    Returns
    -------
    np.ndarray
        Output of shape (N, C_out, H_out, W_out), where
        ``H_out = (H + 2 * p_h - d_h * (K_h - 1) - 1) // s_h + 1``.

    Raises
    ------
    ShapeMismatchError
        If channels, groups or the bias do not match.
    """
    N, C_out, H_out, W_out = conv2d_shape(x.shape, w.shape, stride, padding, dilation, groups)
    if b is not None and b.shape != (C_out,):
        raise ValueError(f"bias shape mismatch: expected ({C_out},), got {b.shape}")
    s_h, s_w = _pair(stride)
    p_h, p_w = _pair(padding)
    d_h, d_w = _pair(dilation)
    _, _, K_h, K_w = w.shape
    c_in_g = w.shape[1]
    c_out_g = C_out // groups

    x_pad = np.pad(x, ((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)), mode="constant")
    span_h = d_h * (K_h - 1) + 1
    span_w = d_w * (K_w - 1) + 1
    y = np.zeros((N, C_out, H_out, W_out), dtype=np.result_type(x, w))

    for n in range(N):
        for co in range(C_out):
            g = co // c_out_g
            xg = x_pad[n, g * c_in_g : (g + 1) * c_in_g]
            for i in range(H_out):
                h0 = i * s_h
                for j in range(W_out):
                    w0 = j * s_w
                    patch = xg[:, h0 : h0 + span_h : d_h, w0 : w0 + span_w : d_w]
                    y[n, co, i, j] = np.sum(patch * w[co])
            if b is not None:
                y[n, co] += b[co]
    return y


def conv2d_backward_cpu(
    x: np.ndarray,
    w: np.ndarray,
    b: Optional[np.ndarray],
    grad_out: np.ndarray,
    stride: IntPair = 1,
    padding: IntPair = 0,
    dilation: IntPair = 1,
    groups: int = 1,
) -> tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """
    Compute the backward pass of a 2D convolution.

    Returns
    -------
    tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]
        ``(grad_x, grad_w, grad_b)``; `grad_b` is None when no bias was used.

    Notes
    -----
    - Padding is applied to the input gradient and removed before returning.
    - Bias gradients sum over batch and spatial dimensions.
    """
    s_h, s_w = _pair(stride)
    p_h, p_w = _pair(padding)
    d_h, d_w = _pair(dilation)
    N, _, H, W = x.shape
    C_out, c_in_g, K_h, K_w = w.shape
    _, _, H_out, W_out = grad_out.shape
    c_out_g = C_out // groups
    span_h = d_h * (K_h - 1) + 1
    span_w = d_w * (K_w - 1) + 1

    x_pad = np.pad(x, ((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)), mode="constant")
    grad_x_pad = np.zeros_like(x_pad)
    grad_w = np.zeros_like(w)
    grad_b = None if b is None else grad_out.sum(axis=(0, 2, 3)).astype(b.dtype, copy=False)

    for n in range(N):
        for co in range(C_out):
            g = co // c_out_g
            channels = slice(g * c_in_g, (g + 1) * c_in_g)
            for i in range(H_out):
                h0 = i * s_h
                for j in range(W_out):
                    w0 = j * s_w
                    go = grad_out[n, co, i, j]
                    rows = slice(h0, h0 + span_h, d_h)
                    cols = slice(w0, w0 + span_w, d_w)
                    grad_w[co] += go * x_pad[n, channels, rows, cols]
                    grad_x_pad[n, channels, rows, cols] += go * w[co]

    grad_x = grad_x_pad[:, :, p_h : p_h + H, p_w : p_w + W]
    return grad_x, grad_w, grad_b
