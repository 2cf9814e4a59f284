"""
Hermite normal forms of integer transformation matrices.

Supercell bases are given by basis @ H, where H is a lower-triangular
integer matrix in Hermite normal form. Every superlattice of index n
corresponds to exactly one such matrix with determinant n.

References
----------
G.L.W. Hart and R.W. Forcade, Physical Review B 77:224115, 2008
https://doi.org/10.1103/PhysRevB.77.224115
"""

import itertools
from typing import Generator

import numpy as np

from ._typehints import IntSequence


def _divisors(n: int) -> list[int]:
    return [d for d in range(1,n+1) if n%d == 0]


def hermite_normal_forms(volume: int,
                         dims: int = 3) -> Generator[np.ndarray, None, None]:
    """
    Generate all Hermite normal forms with given determinant.

    Parameters
    ----------
    volume : int
        Determinant, i.e. number of primitive cells in the supercell.
    dims : int, optional
        Number of lattice vectors to expand. Diagonal entries of
        the remaining vectors are fixed to 1. Defaults to 3.

    Yields
    ------
    H : numpy.ndarray, shape (3,3)
        Lower-triangular matrix [[a,0,0],[b,c,0],[d,e,f]]
        with a*c*f = volume, 0 ≤ b < c, and 0 ≤ d,e < f.
    """
    if volume < 1:
        raise ValueError(f'invalid volume {volume}')
    if dims not in (1,2,3):
        raise ValueError(f'invalid dimensions {dims}')

    for a in _divisors(volume):
        if dims == 1 and a != volume: continue
        for c in _divisors(volume//a):
            f = volume//a//c
            if dims == 2 and f != 1: continue
            for b,d,e in itertools.product(range(c),range(f),range(f)):
                yield np.array([[a,0,0],
                                [b,c,0],
                                [d,e,f]],dtype=int)


def hermite_normal_form(T: IntSequence) -> np.ndarray:
    """
    Reduce integer matrix to Hermite normal form.

    Parameters
    ----------
    T : numpy.ndarray, shape (3,3)
        Non-singular integer matrix.

    Returns
    -------
    H : numpy.ndarray, shape (3,3)
        Lower-triangular Hermite normal form with H = T @ U
        for a unimodular matrix U, i.e. basis @ T and basis @ H
        span the same superlattice.
    """
    H = np.array(T)
    if H.shape != (3,3):
        raise ValueError(f'invalid matrix shape {H.shape}')
    if not np.issubdtype(H.dtype,np.integer):
        if not np.allclose(H,np.rint(H)):
            raise ValueError(f'matrix is not integer: {H.tolist()}')
    H = np.rint(H).astype(int)
    if round(np.linalg.det(H)) == 0:
        raise ValueError('matrix is singular')

    for i in range(3):
        for j in range(i+1,3):
            while H[i,j] != 0:
                H[:,i] -= H[i,i]//H[i,j] * H[:,j]
                H[:,[i,j]] = H[:,[j,i]]
        if H[i,i] < 0:
            H[:,i] *= -1
    for i in range(1,3):
        for j in range(i):
            H[:,j] -= H[i,j]//H[i,i] * H[:,i]

    return H
