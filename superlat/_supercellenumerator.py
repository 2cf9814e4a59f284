import logging
from typing import Union, Iterator, Iterable

import numpy as np

from ._typehints import FloatSequence
from ._lattice import Lattice
from . import niggli
from . import hermite
from . import util


logger = logging.getLogger(__name__)


class SupercellEnumerator:
    """
    Symmetrically distinct superlattices of a reference lattice.

    Iterating yields the canonical form of each superlattice class once,
    ordered by ascending volume. Each iteration starts over.

    Examples
    --------
    Distinct supercells of the simple cubic lattice with two primitive cells:

    >>> import superlat
    >>> L = superlat.Lattice.cubic()
    >>> E = superlat.SupercellEnumerator(L,superlat.MasterSymGroup.from_lattice(L),2,2)
    >>> len(list(E))
    3
    """

    def __init__(self,
                 lattice: Union[Lattice, FloatSequence],
                 point_group: Union[Iterable, np.ndarray],
                 min_volume: int = 1,
                 max_volume: int = 1,
                 dims: int = 3,
                 tol: float = util.TOL,
                 verbose: bool = False):
        """
        New supercell enumerator.

        Parameters
        ----------
        lattice : superlat.Lattice or numpy.ndarray, shape (3,3)
            Reference (primitive) lattice.
        point_group : superlat.MasterSymGroup, iterable of superlat.SymOp, or numpy.ndarray, shape (N,3,3)
            Point group used for deduplication.
        min_volume : int, optional
            Smallest supercell volume in units of the reference volume.
            Defaults to 1.
        max_volume : int, optional
            Largest supercell volume in units of the reference volume.
            Defaults to 1.
        dims : int, optional
            Number of lattice vectors to expand, starting from the first.
            Defaults to 3.
        tol : float, optional
            Tolerance. Defaults to superlat.TOL.
        verbose : bool, optional
            Show progress. Defaults to False.
        """
        self.lattice = lattice if isinstance(lattice,Lattice) else Lattice(lattice,tol)
        self.point_group = point_group
        self._ops = niggli.operation_matrices(point_group)
        if int(min_volume) != min_volume or int(max_volume) != max_volume:
            raise ValueError(f'non-integer volume range [{min_volume},{max_volume}]')
        if min_volume < 1:
            raise ValueError(f'minimum volume {min_volume} is not positive')
        if max_volume < min_volume:
            raise ValueError(f'empty volume range [{min_volume},{max_volume}]')
        if dims not in (1,2,3):
            raise ValueError(f'invalid dimensions {dims}')

        self.min_volume = int(min_volume)
        self.max_volume = int(max_volume)
        self.dims = dims
        self.tol = float(tol)
        self.verbose = verbose


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.
        """
        return util.srepr([f'Supercells of volume {self.min_volume} to {self.max_volume} '
                           f'in {self.dims} dimension(s)',
                           f'point group of order {len(self._ops)}',
                           repr(self.lattice)])


    def __iter__(self) -> Iterator[Lattice]:
        """Iterate over canonical superlattices."""
        for volume in range(self.min_volume,self.max_volume+1):
            HNFs = list(hermite.hermite_normal_forms(volume,self.dims))
            found: list[Lattice] = []
            for H in util.show_progress(HNFs,prefix=f'volume {volume:>3}') if self.verbose else HNFs:
                N = len(found)
                i = self.add_supercell(found,Lattice(self.lattice.basis@H,self.tol))
                if i == N:
                    yield found[i]
            logger.info(f'volume {volume}: {len(found)} distinct of {len(HNFs)} supercells')


    def canonical(self,
                  lattice: Union[Lattice, FloatSequence]) -> Lattice:
        """
        Return canonical form under the point group.

        Parameters
        ----------
        lattice : superlat.Lattice or numpy.ndarray, shape (3,3)
            Lattice to canonicalize.

        Returns
        -------
        canonical : superlat.Lattice
            Canonical equivalent lattice.
        """
        return niggli.canonical_equivalent_lattice(lattice,self._ops,self.tol)


    def add_supercell(self,
                      supercells: list[Lattice],
                      lattice: Union[Lattice, FloatSequence]) -> int:
        """
        Add canonical form of a lattice unless an equal one is present.

        Parameters
        ----------
        supercells : list of superlat.Lattice
            Canonical lattices, modified in-place.
        lattice : superlat.Lattice or numpy.ndarray, shape (3,3)
            Lattice to add.

        Returns
        -------
        index : int
            Position of the canonical form in supercells.
        """
        C = self.canonical(lattice)
        for i,S in enumerate(supercells):
            if S.isclose(C,self.tol):
                return i
        supercells.append(C)
        return len(supercells)-1


    def transformation_matrix(self,
                              superlattice: Union[Lattice, FloatSequence]) -> np.ndarray:
        """
        Return integer transformation from the reference lattice.

        Parameters
        ----------
        superlattice : superlat.Lattice or numpy.ndarray, shape (3,3)
            Superlattice of the reference lattice.

        Returns
        -------
        T : numpy.ndarray, shape (3,3)
            Integer matrix with superlattice.basis = lattice.basis @ T.
        """
        S = superlattice if isinstance(superlattice,Lattice) else Lattice(superlattice,self.tol)
        return self.lattice.transformation_to(S)


    @property
    def counts(self) -> dict[int, int]:
        """Number of distinct superlattices per volume."""
        n: dict[int, int] = dict.fromkeys(range(self.min_volume,self.max_volume+1),0)
        for S in self:
            n[int(round(S.volume/self.lattice.volume))] += 1
        return n
