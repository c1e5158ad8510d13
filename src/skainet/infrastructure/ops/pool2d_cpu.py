"""
CPU reference implementations for 2D max pooling (NumPy backend).

Tensors use the NCHW layout. The forward pass returns the flat argmax index
of every window (into the padded input plane) so the backward pass can route
gradients to the selected elements.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ._shape_inference import IntPair, _pair, pool2d_shape


def maxpool2d_forward_cpu(
    x: np.ndarray,
    kernel_size: IntPair,
    stride: Optional[IntPair] = None,
    padding: IntPair = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Naive MaxPool2D forward pass for NCHW tensors.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        y :
            Output tensor of shape (N, C, H_out, W_out).
        argmax_idx :
            Integer array of shape (N, C, H_out, W_out) storing the flattened
            index into the padded input plane where the maximum was selected.

    Notes
    -----
    Padding is performed with `-inf` so padded values never become maxima.
    """
    N, C, H_out, W_out = pool2d_shape(x.shape, kernel_size, stride, padding)
    k_h, k_w = _pair(kernel_size)
    s_h, s_w = _pair(kernel_size if stride is None else stride)
    p_h, p_w = _pair(padding)

    work = x if x.dtype.kind == "f" else x.astype(np.float64)
    x_pad = np.pad(work, ((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)), constant_values=-np.inf)
    W_pad = x_pad.shape[3]

    y = np.empty((N, C, H_out, W_out), dtype=x.dtype)
    argmax_idx = np.empty((N, C, H_out, W_out), dtype=np.int64)
    for n in range(N):
        for c in range(C):
            for i in range(H_out):
                h0 = i * s_h
                for j in range(W_out):
                    w0 = j * s_w
                    patch = x_pad[n, c, h0 : h0 + k_h, w0 : w0 + k_w]
                    flat_idx = int(np.argmax(patch))
                    y[n, c, i, j] = patch.reshape(-1)[flat_idx]
                    ph, pw = divmod(flat_idx, k_w)
                    argmax_idx[n, c, i, j] = (h0 + ph) * W_pad + (w0 + pw)
    return y, argmax_idx


def maxpool2d_backward_cpu(
    grad_out: np.ndarray,
    argmax_idx: np.ndarray,
    *,
    x_shape: tuple[int, int, int, int],
    padding: IntPair = 0,
) -> np.ndarray:
    """
    Route output gradients back to the maxima selected by the forward pass.
    """
    N, C, H, W = x_shape
    p_h, p_w = _pair(padding)
    H_pad, W_pad = H + 2 * p_h, W + 2 * p_w

    grad_x_pad = np.zeros((N, C, H_pad, W_pad), dtype=grad_out.dtype)
    H_out, W_out = grad_out.shape[2], grad_out.shape[3]
    for n in range(N):
        for c in range(C):
            for i in range(H_out):
                for j in range(W_out):
                    h, w_ = divmod(int(argmax_idx[n, c, i, j]), W_pad)
                    grad_x_pad[n, c, h, w_] += grad_out[n, c, i, j]
    return grad_x_pad[:, :, p_h : p_h + H, p_w : p_w + W]
