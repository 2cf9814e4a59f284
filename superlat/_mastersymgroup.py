import logging
from collections.abc import Sequence
from typing import Optional, Union, Any, Iterable

import numpy as np

from ._typehints import FloatSequence, IntSequence, FileHandle
from ._lattice import Lattice
from ._symop import SymOpRepresentation, SymOp, SymPermutation, MasterGroupError, RepresentationError
from ._yaml import YAML, dump
from . import niggli
from . import util


logger = logging.getLogger(__name__)


class MasterSymGroup(Sequence):
    """
    Group of symmetry operations with a registry of representations.

    The group owns its operations, stored as Cartesian SymOps in
    representation 0, and any number of further representation tables
    with one slot per operation. Operations refer back to the group
    without owning it.

    Examples
    --------
    Point group of the simple cubic lattice:

    >>> import superlat
    >>> G = superlat.MasterSymGroup.from_lattice(superlat.Lattice.cubic())
    >>> len(G)
    48
    """

    def __init__(self,
                 operations: Iterable[Union[SymOp, FloatSequence]],
                 tol: float = util.TOL):
        """
        New master group.

        Parameters
        ----------
        operations : iterable of superlat.SymOp or numpy.ndarray of shape (3,3)
            Operations of the group. Matrices are interpreted as
            point operations without translation.
        tol : float, optional
            Absolute tolerance for comparing operations.
            Defaults to superlat.TOL.
        """
        self.tol = float(tol)
        ops = [op.copy() if isinstance(op,SymOp) else SymOp(op) for op in operations]
        if not ops:
            raise ValueError('empty group')
        self._reps: list[list[Optional[SymOpRepresentation]]] = [ops]
        for i,op in enumerate(ops):
            op.set_identifiers(self,0,i)

        self.multiplication_table = self._multiplication_table()
        identity = np.flatnonzero([np.allclose(op.matrix,np.eye(3),rtol=0.,atol=tol)
                                   and np.allclose(op.tau,0.,rtol=0.,atol=tol) for op in ops])
        if len(identity) != 1:
            raise ValueError('group does not contain the identity exactly once')
        self.identity_index = int(identity[0])
        self.inverse_table = np.argmax(self.multiplication_table == self.identity_index,axis=1)
        if not np.all(self.multiplication_table[np.arange(len(ops)),self.inverse_table] == self.identity_index):
            raise ValueError('group is not closed under inversion')


    def _multiplication_table(self) -> np.ndarray:
        M = self.matrices
        t = np.array([op.tau for op in self])
        prod_M = np.einsum('iab,jbc->ijac',M,M)
        prod_t = np.einsum('iab,jb->ija',M,t) + t[:,np.newaxis,:]
        match = np.all(np.abs(prod_M[:,:,np.newaxis]-M) <= self.tol,axis=(-2,-1)) \
              & np.all(np.abs(prod_t[:,:,np.newaxis]-t) <= self.tol,axis=-1)
        if not np.all(np.any(match,axis=-1)):
            raise ValueError('group is not closed under composition')
        return np.argmax(match,axis=-1)


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.
        """
        types = [op.symmetry_type for op in self]
        return util.srepr([f'Master group of order {len(self)}',
                           f'representations: {len(self._reps)}']
                        + [f'{t}: {types.count(t)}' for t in dict.fromkeys(types)])


    def __len__(self) -> int:
        """Number of operations."""
        return len(self._reps[0])


    def __getitem__(self,
                    item):
        """Return self[item], the Cartesian operation(s)."""
        return self._reps[0][item]


    @property
    def matrices(self) -> np.ndarray:
        """Cartesian point operations, shape (N,3,3)."""
        return np.array([op.matrix for op in self])


    @property
    def n_representations(self) -> int:
        """Number of representation tables, including the Cartesian one."""
        return len(self._reps)


    def add_representation(self,
                           reps: Optional[Sequence[SymOpRepresentation]] = None) -> int:
        """
        Add a representation table.

        Parameters
        ----------
        reps : sequence of superlat.SymOpRepresentation, optional
            Representation of each operation, in group order.
            If not given, all slots are empty.

        Returns
        -------
        rep_id : int
            Identifier of the new table.
        """
        if reps is not None and len(reps) != len(self):
            raise ValueError(f'{len(reps)} representations for group of order {len(self)}')
        rep_id = len(self._reps)
        self._reps.append([None]*len(self))
        if reps is not None:
            for op,rep in zip(self,reps):
                op.register_rep(rep_id,rep)
        logger.debug(f'added representation {rep_id}')
        return rep_id


    def add_permutation_representation(self,
                                       permutations: Sequence[IntSequence]) -> int:
        """
        Add a permutation representation.

        Parameters
        ----------
        permutations : sequence of numpy.ndarray
            Permutation for each operation, in group order.

        Returns
        -------
        rep_id : int
            Identifier of the new table.
        """
        return self.add_representation([SymPermutation(p) for p in permutations])


    def representation(self,
                       rep_id: int) -> list[Optional[SymOpRepresentation]]:
        """
        Return representation table.

        Parameters
        ----------
        rep_id : int
            Identifier of the table.

        Returns
        -------
        table : list
            Representation of each operation, None for empty slots.
        """
        if not 0 <= rep_id < len(self._reps):
            raise RepresentationError(f'no representation {rep_id}')
        return list(self._reps[rep_id])


    def get_rep(self,
                rep_id: int,
                op_index: int) -> Optional[SymOpRepresentation]:
        """Return registered representation of one operation, None if absent."""
        if not 0 <= rep_id < len(self._reps) or not 0 <= op_index < len(self):
            return None
        return self._reps[rep_id][op_index]


    def _register(self,
                  rep_id: int,
                  op_index: int,
                  op_rep: SymOpRepresentation):
        if not 0 <= rep_id < len(self._reps):
            raise RepresentationError(f'no representation {rep_id}')
        if not 0 <= op_index < len(self._reps[rep_id]):
            raise RepresentationError(f'no slot {op_index} in representation {rep_id}')
        if rep_id == 0:
            raise RepresentationError('Cartesian representation cannot be replaced')
        rep = op_rep.copy()
        rep.set_identifiers(self,rep_id,op_index)
        self._reps[rep_id][op_index] = rep


    def characters(self,
                   rep_id: int = 0) -> list[float]:
        """
        Return characters of a representation.

        Parameters
        ----------
        rep_id : int, optional
            Identifier of the table. Defaults to 0 (Cartesian).

        Returns
        -------
        characters : list of float
            Character of each operation, NaN for empty slots
            and representations without character.
        """
        return [np.nan if r is None else r.character for r in self.representation(rep_id)]


    def index(self,
              op: Union[SymOpRepresentation, FloatSequence],
              rep_id: int = 0) -> int:
        """
        Return position of an operation.

        Parameters
        ----------
        op : superlat.SymOpRepresentation or numpy.ndarray of shape (3,3)
            Operation to look up; matrices are compared
            with Cartesian operations without translation.
        rep_id : int, optional
            Table to search. Defaults to 0 (Cartesian).

        Returns
        -------
        index : int
            Position within the group.
        """
        candidate = op.copy() if isinstance(op,SymOpRepresentation) else SymOp(op)
        try:
            candidate.set_identifiers(self,rep_id)
        except MasterGroupError as e:
            raise ValueError(f'operation not in group: {e}') from e
        return candidate.op_index


    @staticmethod
    def from_lattice(lattice: Union[Lattice, FloatSequence],
                     tol: float = util.TOL) -> 'MasterSymGroup':
        """
        Determine point group of a lattice.

        Parameters
        ----------
        lattice : superlat.Lattice or numpy.ndarray of shape (3,3)
            Lattice.
        tol : float, optional
            Tolerance for orthogonality of operations.
            Defaults to superlat.TOL.

        Returns
        -------
        point_group : superlat.MasterSymGroup
            Cartesian orthogonal operations mapping the lattice
            onto itself, identity first.

        """
        return MasterSymGroup(niggli.lattice_point_group(lattice,tol),tol)


    def as_dict(self) -> dict[str, Any]:
        """
        Serialize.

        Returns
        -------
        d : dict
            Tolerance, operations, and additional representation tables.
        """
        return {'tolerance':self.tol,
                'operations':[op.as_dict() for op in self],
                'representations':[[None if r is None else r.as_dict() for r in table]
                                   for table in self._reps[1:]]}


    @staticmethod
    def from_dict(d: dict[str, Any]) -> 'MasterSymGroup':
        """
        Deserialize.

        Parameters
        ----------
        d : dict
            Serialized group as given by 'as_dict'.

        Returns
        -------
        group : superlat.MasterSymGroup
            Group with all representation tables.
        """
        try:
            ops = [SymOpRepresentation.from_dict(o) for o in d['operations']]
        except KeyError as e:
            raise ValueError('group record without operations') from e
        if not all(isinstance(o,SymOp) for o in ops):
            raise ValueError('group operations must be SymOp records')

        G = MasterSymGroup(ops,d.get('tolerance',util.TOL))
        for table in d.get('representations',[]):
            if len(table) != len(G):
                raise ValueError(f'representation table of length {len(table)} for group of order {len(G)}')
            rep_id = G.add_representation()
            for op,r in zip(G,table):
                if r is not None:
                    op.register_rep(rep_id,SymOpRepresentation.from_dict(r))
        return G


    def save(self,
             fname: FileHandle):
        """
        Save to YAML file.

        Parameters
        ----------
        fname : file, str, or pathlib.Path
            Filename or file to write.
        """
        dump(self,fname)


    @staticmethod
    def load(fname: FileHandle) -> 'MasterSymGroup':
        """
        Load from YAML file.

        Parameters
        ----------
        fname : file, str, or pathlib.Path
            Filename or file to read.

        Returns
        -------
        group : superlat.MasterSymGroup
            Group from file.
        """
        return MasterSymGroup.from_dict(YAML.load(fname))
