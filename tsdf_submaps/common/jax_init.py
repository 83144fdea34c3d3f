"""
Single import point for JAX.

Enables 64-bit floats before any array is created so voxel distances and
weights keep double precision through the merge kernels. Import jax and jnp
from here, never directly.
"""

from __future__ import annotations

import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp  # noqa: E402

__all__ = ["jax", "jnp"]
