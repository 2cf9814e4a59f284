"""
Niggli reduction and canonical equivalent lattices.

All functions operate on lattices with basis vectors as columns and
accept the comparison tolerance explicitly. Dot products of basis vectors
are compared with the tolerance scaled by the cube root of the cell volume.

References
----------
I. Křivý and B. Gruber, Acta Crystallographica A32:297–298, 1976
https://doi.org/10.1107/S0567739476000636

R.W. Grosse-Kunstleve et al., Acta Crystallographica A60:1–6, 2004
https://doi.org/10.1107/S010876730302186X
"""

import itertools
import logging
from typing import Union, Iterable

import numpy as np

from ._typehints import FloatSequence
from ._lattice import Lattice
from . import util


logger = logging.getLogger(__name__)

_MAX_ITERATIONS = 1000

# integer matrices with elements in {-1,0,1} and determinant ±1
_U = np.array(list(itertools.product([-1,0,1],repeat=9)),dtype=int).reshape(-1,3,3)
_det_U = np.rint(np.linalg.det(_U)).astype(int)
_U, _det_U = _U[np.abs(_det_U) == 1], _det_U[np.abs(_det_U) == 1]

_N1 = np.array([[ 0,-1, 0],
                [-1, 0, 0],
                [ 0, 0,-1]])
_N2 = np.array([[-1, 0, 0],
                [ 0, 0,-1],
                [ 0,-1, 0]])
_N8 = np.array([[ 1, 0, 1],
                [ 0, 1, 1],
                [ 0, 0, 1]])


def _as_lattice(lattice: Union[Lattice, FloatSequence],
                tol: float) -> Lattice:
    return lattice if isinstance(lattice,Lattice) else Lattice(lattice,tol)

def _epsilon(basis: np.ndarray,
             tol: float) -> Union[float, np.ndarray]:
    """Tolerance for comparison of dot products."""
    return tol*np.abs(np.linalg.det(basis))**(1./3.)

def _parameters(basis: np.ndarray) -> np.ndarray:
    G = np.einsum('...ki,...kj->...ij',basis,basis)
    return np.stack([G[...,0,0],G[...,1,1],G[...,2,2],
                     2.*G[...,1,2],2.*G[...,0,2],2.*G[...,0,1]],axis=-1)

def _sign(x: float,
          eps: float) -> int:
    return 1 if x > eps else (-1 if x < -eps else 0)


def _niggli_conditions(p: np.ndarray,
                       eps: Union[float, np.ndarray]) -> np.ndarray:
    """Evaluate main and special Niggli conditions on parameters (...,6)."""
    A,B,C,xi,eta,zeta = np.moveaxis(p,-1,0)

    def gt(x,y): return x > y + eps
    def eq(x,y): return np.abs(x-y) <= eps

    type_I  =  gt(xi,0.) &  gt(eta,0.) &  gt(zeta,0.)
    type_II = ~gt(xi,0.) & ~gt(eta,0.) & ~gt(zeta,0.)

    ok  = ~gt(A,B) & ~gt(B,C)
    ok &= ~gt(np.abs(xi),B) & ~gt(np.abs(eta),A) & ~gt(np.abs(zeta),A)
    ok &= type_I | type_II
    ok &= ~(type_II & gt(np.abs(xi)+np.abs(eta)+np.abs(zeta),A+B))

    ok &= ~(eq(A,B) & gt(np.abs(xi),np.abs(eta)))
    ok &= ~(eq(B,C) & gt(np.abs(eta),np.abs(zeta)))

    ok &= ~(type_I & eq(xi,B)   & gt(zeta,2.*eta))
    ok &= ~(type_I & eq(eta,A)  & gt(zeta,2.*xi))
    ok &= ~(type_I & eq(zeta,A) & gt(eta,2.*xi))

    ok &= ~(type_II & eq(xi,-B)  & ~eq(zeta,0.))
    ok &= ~(type_II & eq(eta,-A) & ~eq(zeta,0.))
    ok &= ~(type_II & eq(zeta,-A) & ~eq(eta,0.))
    ok &= ~(type_II & eq(xi+eta+zeta+A+B,0.) & gt(2.*(A+eta)+zeta,0.))

    return ok


def _krivy_gruber(basis: np.ndarray,
                  eps: float) -> np.ndarray:
    """
    Find transformation to a Niggli-reduced basis.

    Steps N1 to N8 are tested in order; whenever one of them changes
    the basis, testing restarts at N1 with the updated dot products.
    """
    T = np.eye(3,dtype=int)

    for iteration in range(_MAX_ITERATIONS):
        A,B,C,xi,eta,zeta = _parameters(basis@T)

        if A > B + eps or (abs(A-B) <= eps and abs(xi) > abs(eta) + eps):
            T = T@_N1
            continue
        if B > C + eps or (abs(B-C) <= eps and abs(eta) > abs(zeta) + eps):
            T = T@_N2
            continue

        l,m,n = _sign(xi,eps),_sign(eta,eps),_sign(zeta,eps)
        if l*m*n == 1:
            ijk = [l,m,n]
        else:
            ijk = [-1 if s == 1 else 1 for s in (l,m,n)]
            if np.prod(ijk) == -1:
                ijk[[l,m,n].index(0)] = -1
        if ijk != [1,1,1]:
            T = T@np.diag(ijk)
            continue

        if abs(xi) > B + eps or (abs(xi-B) <= eps and 2.*eta < zeta - eps) \
                             or (abs(xi+B) <= eps and zeta < -eps):
            T = T@np.array([[1,0,0],[0,1,-int(np.sign(xi))],[0,0,1]])
            continue
        if abs(eta) > A + eps or (abs(eta-A) <= eps and 2.*xi < zeta - eps) \
                              or (abs(eta+A) <= eps and zeta < -eps):
            T = T@np.array([[1,0,-int(np.sign(eta))],[0,1,0],[0,0,1]])
            continue
        if abs(zeta) > A + eps or (abs(zeta-A) <= eps and 2.*xi < eta - eps) \
                               or (abs(zeta+A) <= eps and eta < -eps):
            T = T@np.array([[1,-int(np.sign(zeta)),0],[0,1,0],[0,0,1]])
            continue
        if xi+eta+zeta+A+B < -eps or (abs(xi+eta+zeta+A+B) <= eps and 2.*(A+eta)+zeta > eps):
            T = T@_N8
            continue

        logger.debug(f'Křivý–Gruber reduction converged after {iteration} steps')
        return T

    raise RuntimeError(f'Niggli reduction did not converge within {_MAX_ITERATIONS} steps')


def _orientation_key(basis: np.ndarray,
                     tol: float) -> tuple:
    """
    Sort key of a basis; the smallest key is the preferred representative.

    Candidates share their Niggli parameters, so symmetric and persymmetric
    bases are preferred, then large elements in spatial unroll order.
    """
    return (not util.is_symmetric(basis,tol),
            not util.is_persymmetric(basis,tol),
            *(-np.rint(util.spatial_unroll(basis)/tol)).astype(int).tolist())


def _select(candidates: np.ndarray,
            tol: float) -> np.ndarray:
    if len(candidates) == 0:
        raise RuntimeError('no Niggli-reduced candidate basis found')
    logger.debug(f'selecting from {len(candidates)} Niggli-reduced candidates')
    return min(candidates,key=lambda b: _orientation_key(b,tol))


def operation_matrices(point_group: Union[Iterable, np.ndarray]) -> np.ndarray:
    """
    Return Cartesian matrices of point group operations.

    Parameters
    ----------
    point_group : superlat.MasterSymGroup, iterable of superlat.SymOp, or numpy.ndarray, shape (N,3,3)
        Point group operations.

    Returns
    -------
    matrices : numpy.ndarray, shape (N,3,3)
        Matrix of each operation.
    """
    if isinstance(point_group,np.ndarray):
        ops = point_group.reshape(-1,3,3)
    else:
        ops = [op.matrix for op in point_group]
        if any(m is None for m in ops):
            raise ValueError('point group operation without matrix representation')
        ops = np.array(ops,dtype=float).reshape(-1,3,3)
    if len(ops) == 0:
        raise ValueError('empty point group')
    return ops


def niggli_parameters(lattice: Union[Lattice, FloatSequence]) -> np.ndarray:
    """
    Return parameters of the metric tensor.

    Parameters
    ----------
    lattice : Lattice or numpy.ndarray, shape (...,3,3)
        Lattice or stack of bases (vectors as columns).

    Returns
    -------
    parameters : numpy.ndarray, shape (...,6)
        A = a·a, B = b·b, C = c·c, ξ = 2b·c, η = 2a·c, ζ = 2a·b.
    """
    return _parameters(lattice.basis if isinstance(lattice,Lattice) else np.asarray(lattice,dtype=float))


def is_niggli(lattice: Union[Lattice, FloatSequence],
              tol: float = util.TOL) -> Union[bool, np.ndarray]:
    """
    Test whether a basis fulfills the Niggli conditions.

    Parameters
    ----------
    lattice : Lattice or numpy.ndarray, shape (...,3,3)
        Lattice or stack of bases (vectors as columns).
    tol : float, optional
        Tolerance. Defaults to superlat.TOL.

    Returns
    -------
    niggli : bool or numpy.ndarray of bool, shape (...)
        Whether the main and special conditions of a
        type I or type II Niggli cell are fulfilled.
    """
    basis = lattice.basis if isinstance(lattice,Lattice) else np.asarray(lattice,dtype=float)
    ok = _niggli_conditions(_parameters(basis),_epsilon(basis,tol))
    return bool(ok) if ok.ndim == 0 else ok


def reduced_cell(lattice: Union[Lattice, FloatSequence],
                 tol: float = util.TOL) -> Lattice:
    """
    Reduce with the Křivý–Gruber algorithm.

    Parameters
    ----------
    lattice : Lattice or numpy.ndarray, shape (3,3)
        Lattice to reduce.
    tol : float, optional
        Tolerance. Defaults to superlat.TOL.

    Returns
    -------
    reduced : Lattice
        A Niggli-reduced basis of the same point lattice.
        Unlike 'niggli', no particular orientation is selected.
    """
    L = _as_lattice(lattice,tol)
    return Lattice(L.basis@_krivy_gruber(L.basis,_epsilon(L.basis,tol)),L.tol)


def niggli(lattice: Union[Lattice, FloatSequence],
           tol: float = util.TOL,
           keep_handedness: bool = False) -> Lattice:
    """
    Return the Niggli-reduced lattice.

    Parameters
    ----------
    lattice : Lattice or numpy.ndarray, shape (3,3)
        Lattice to reduce.
    tol : float, optional
        Tolerance. Defaults to superlat.TOL.
    keep_handedness : bool, optional
        Return a basis with the same handedness as the input
        instead of a right-handed one. Defaults to False.

    Returns
    -------
    reduced : Lattice
        Niggli-reduced basis of the same point lattice.

    Notes
    -----
    A Niggli cell is unique only up to its metric. Among all Niggli bases
    of the lattice with the requested handedness, the one with the smallest
    orientation key is returned: symmetric bases are preferred over
    persymmetric ones, ties are broken by the largest elements in spatial
    unroll order. Hence, the result does not depend on the input basis
    and reduction is idempotent.
    """
    L = _as_lattice(lattice,tol)
    eps = _epsilon(L.basis,tol)
    R = L.basis@_krivy_gruber(L.basis,eps)

    # Křivý–Gruber steps preserve handedness
    candidates = R@(_U[_det_U == 1] if keep_handedness else _U)
    candidates = candidates[_niggli_conditions(_parameters(candidates),eps)]
    if not keep_handedness:
        candidates = candidates[np.linalg.det(candidates) > 0.]

    return Lattice(_select(candidates,tol),L.tol)


def lattice_point_group(lattice: Union[Lattice, FloatSequence],
                        tol: float = util.TOL) -> np.ndarray:
    """
    Return Cartesian point operations that map the lattice onto itself.

    Parameters
    ----------
    lattice : Lattice or numpy.ndarray, shape (3,3)
        Lattice.
    tol : float, optional
        Tolerance for orthogonality. Defaults to superlat.TOL.

    Returns
    -------
    operations : numpy.ndarray, shape (N,3,3)
        Orthogonal matrices, identity first.

    Notes
    -----
    Symmetry operations of a Niggli-reduced basis have
    integer coordinates in {-1,0,1}.
    """
    R = niggli(lattice,tol).basis
    S = np.einsum('ij,njk,kl->nil',R,_U,np.linalg.inv(R))
    S = S[np.all(np.abs(np.einsum('nji,njk->nik',S,S)-np.eye(3)) <= tol,axis=(-2,-1))]
    identity = np.all(np.abs(S-np.eye(3)) <= tol,axis=(-2,-1))
    logger.debug(f'lattice point group of order {len(S)}')
    return np.concatenate([S[identity],S[~identity]])


def canonical_equivalent_lattice(lattice: Union[Lattice, FloatSequence],
                                 point_group: Union[Iterable, np.ndarray],
                                 tol: float = util.TOL) -> Lattice:
    """
    Return the canonical representative of the lattice under a point group.

    Parameters
    ----------
    lattice : Lattice or numpy.ndarray, shape (3,3)
        Lattice to canonicalize.
    point_group : superlat.MasterSymGroup, iterable of superlat.SymOp, or numpy.ndarray, shape (N,3,3)
        Point group operations as Cartesian matrices.
    tol : float, optional
        Tolerance. Defaults to superlat.TOL.

    Returns
    -------
    canonical : Lattice
        Right-handed Niggli basis with the smallest orientation key
        among all images of the lattice under the point group.
        Equivalent lattices give identical results.
    """
    L = _as_lattice(lattice,tol)
    ops = operation_matrices(point_group)
    eps = _epsilon(L.basis,tol)
    R = L.basis@_krivy_gruber(L.basis,eps)

    # the metric of S @ R @ U does not depend on the orthogonal S
    U = _U[_niggli_conditions(_parameters(R@_U),eps)]
    candidates = ((ops@R)[:,np.newaxis]@U).reshape(-1,3,3)
    candidates = candidates[np.linalg.det(candidates) > 0.]

    return Lattice(_select(candidates,tol),L.tol)
