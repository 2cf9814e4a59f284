import abc
import copy
import weakref
from typing import Optional, Any, Sequence, get_args

import numpy as np

from ._typehints import FloatSequence, IntSequence, SymmetryType, RepresentationKind
from . import util


_symmetry_types = get_args(SymmetryType)


class MasterGroupError(ValueError):
    """Operation is not attached to a (living) master group or has no index in it."""


class RepresentationError(KeyError):
    """Representation table or slot does not exist."""


def _readonly(a: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if a is None: return None
    v = a.view()
    v.flags.writeable = False
    return v


def _check_index(op_index: Optional[int],
                 group: Any):
    if op_index is None:
        raise MasterGroupError('operation index is unset')
    if not 0 <= op_index < len(group):
        raise MasterGroupError(f'operation index {op_index} out of range for group of order {len(group)}')


def _classify(matrix: np.ndarray,
              tau: np.ndarray,
              tol: float) -> SymmetryType:
    """Geometric type of a Cartesian operation x -> matrix @ x + tau."""
    if matrix.shape != (3,3) or not np.allclose(matrix.T@matrix,np.eye(3),rtol=0.,atol=tol):
        return 'invalid'

    det = np.linalg.det(matrix)
    trace = np.trace(matrix)
    if det > 0.:
        if abs(trace-3.) <= tol:
            return 'identity'
        axis = np.linalg.svd(matrix-np.eye(3))[2][-1]
        return 'screw' if np.linalg.norm(axis@tau) > tol else 'rotation'
    else:
        if abs(trace+3.) <= tol:
            return 'inversion'
        if abs(trace-1.) <= tol:
            normal = np.linalg.svd(matrix+np.eye(3))[2][-1]
            return 'glide' if np.linalg.norm(tau-(normal@tau)*normal) > tol else 'mirror'
        return 'rotoinversion'


class SymOpRepresentation(abc.ABC):
    """
    Representation of a symmetry operation of a master group.

    The master group owns the representation tables. Each representation
    holds a non-owning reference to its master group, the index of the
    table it belongs to (rep_id), and its index within the group (op_index).
    Unset identifiers are None.
    """

    kind: RepresentationKind

    def __init__(self,
                 master_group: Any = None,
                 rep_id: Optional[int] = None,
                 op_index: Optional[int] = None):
        if master_group is not None and op_index is not None:
            _check_index(op_index,master_group)
        self._master = None if master_group is None else weakref.ref(master_group)
        self.rep_id = rep_id
        self.op_index = op_index
        self._symmetry_type: Optional[SymmetryType] = None


    def __copy__(self) -> 'SymOpRepresentation':
        """
        Return copy(self).

        The copy shares the master group but owns its data.
        """
        dup = copy.deepcopy({k:v for k,v in self.__dict__.items() if k != '_master'})
        new = object.__new__(type(self))
        new.__dict__.update(dup)
        new._master = self._master
        return new

    copy = __copy__


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.
        """
        return util.srepr([f'{self.kind} ({self.symmetry_type})']
                        + [f'{k}: {v}' for k,v in self._payload().items()])


    @abc.abstractmethod
    def _payload(self) -> dict[str, Any]:
        """Serializable representation data."""
        raise NotImplementedError

    @abc.abstractmethod
    def _equal_data(self,
                    other: 'SymOpRepresentation',
                    tol: float) -> bool:
        """Whether the representation data of other agrees within tolerance."""
        raise NotImplementedError


    @property
    def character(self) -> float:
        """Character, i.e. trace of the representation, NaN if undefined."""
        return np.nan

    @property
    def permutation(self) -> Optional[np.ndarray]:
        """Permutation array, None if not a permutation representation."""
        return None

    @property
    def matrix(self) -> Optional[np.ndarray]:
        """Matrix, None if not a matrix representation."""
        return None

    @property
    def basis_permutation(self) -> Optional[np.ndarray]:
        """Site mapping as (sublattice,i,j,k), None if not a basis permutation."""
        return None


    @property
    def has_valid_master(self) -> bool:
        """Whether the master group is set and still alive."""
        return self._master is not None and self._master() is not None

    @property
    def master_group(self):
        """Master group this operation belongs to."""
        if (master := None if self._master is None else self._master()) is None:
            raise MasterGroupError('no valid master group')
        return master

    @property
    def index(self) -> Optional[int]:
        """Position within the master group, None if unset."""
        return self.op_index

    def invalidate_index(self):
        """Forget the position within the master group."""
        self.op_index = None


    def _master_and_index(self):
        if not self.has_valid_master:
            raise MasterGroupError('no valid master group')
        master = self.master_group
        _check_index(self.op_index,master)
        return master, self.op_index


    def ind_inverse(self) -> int:
        """
        Return index of the inverse operation.

        Returns
        -------
        index : int
            Position of the inverse within the master group.
        """
        master,i = self._master_and_index()
        return int(master.inverse_table[i])


    def ind_prod(self,
                 other: 'SymOpRepresentation') -> int:
        """
        Return index of the product self*other.

        Parameters
        ----------
        other : SymOpRepresentation
            Right-hand side operation of the same master group.

        Returns
        -------
        index : int
            Position of the product within the master group.
        """
        master,i = self._master_and_index()
        _check_index(other.op_index,master)
        return int(master.multiplication_table[i,other.op_index])


    def _registered(self,
                    rep_id: int) -> Optional['SymOpRepresentation']:
        if not self.has_valid_master or self.op_index is None:
            return None
        return self.master_group.get_rep(rep_id,self.op_index)

    def matrix_rep(self,
                   rep_id: int) -> Optional[np.ndarray]:
        """
        Return matrix of this operation in representation rep_id.

        None if no master group or index is set, or nothing is registered.
        """
        return None if (rep := self._registered(rep_id)) is None else rep.matrix

    def permutation_rep(self,
                        rep_id: int) -> Optional[np.ndarray]:
        """Return permutation of this operation in representation rep_id, or None."""
        return None if (rep := self._registered(rep_id)) is None else rep.permutation

    def basis_permute_rep(self,
                          rep_id: int) -> Optional[np.ndarray]:
        """Return site mapping of this operation in representation rep_id, or None."""
        return None if (rep := self._registered(rep_id)) is None else rep.basis_permutation

    def matrix_reps(self,
                    rep_ids: Sequence[int]) -> list[Optional[np.ndarray]]:
        """Return matrices of this operation in several representations."""
        return [self.matrix_rep(r) for r in rep_ids]


    def register_rep(self,
                     rep_id: int,
                     op_rep: 'SymOpRepresentation'):
        """
        Register a copy of op_rep as the representation of this operation.

        Parameters
        ----------
        rep_id : int
            Table in the master group.
        op_rep : SymOpRepresentation
            Representation of this operation; it is copied.
        """
        if not self.has_valid_master:
            raise RepresentationError('cannot register representation without master group')
        if self.op_index is None:
            raise RepresentationError('cannot register representation without operation index')
        self.master_group._register(rep_id,self.op_index,op_rep)


    def set_identifiers(self,
                        group: Any,
                        rep_id: int,
                        op_index: Optional[int] = None):
        """
        Attach to a master group.

        Parameters
        ----------
        group : MasterSymGroup
            New master group.
        rep_id : int
            Table of the master group this representation belongs to.
        op_index : int, optional
            Position within the group. If not given, the table is
            searched for a representation with equal data.
        """
        if op_index is None:
            table = group.representation(rep_id)
            matches = [i for i,r in enumerate(table)
                       if r is not None and type(r) is type(self) and self._equal_data(r,group.tol)]
            if not matches:
                raise MasterGroupError(f'operation not found in representation {rep_id}')
            op_index = matches[0]
        else:
            _check_index(op_index,group)

        self._master = weakref.ref(group)
        self.rep_id = rep_id
        self.op_index = op_index


    @property
    def symmetry_type(self) -> SymmetryType:
        """Geometric type of the operation, computed on first access."""
        if self._symmetry_type is None:
            self._symmetry_type = self.calc_symmetry_type()
        return self._symmetry_type

    def calc_symmetry_type(self) -> SymmetryType:
        """
        Classify the operation.

        Representations without geometric data take the type of the
        corresponding Cartesian operation of the master group.
        """
        if not self.has_valid_master or self.op_index is None:
            return 'invalid'
        op = self.master_group.get_rep(0,self.op_index)
        return 'invalid' if op is None or op is self else op.calc_symmetry_type()


    def as_dict(self) -> dict[str, Any]:
        """
        Serialize.

        Returns
        -------
        d : dict
            Variant name, symmetry type and representation data.
        """
        return {'representation':self.kind,'symmetry':self.symmetry_type,**self._payload()}


    @staticmethod
    def from_dict(d: dict[str, Any]) -> 'SymOpRepresentation':
        """
        Deserialize.

        Parameters
        ----------
        d : dict
            Serialized representation as given by 'as_dict'.

        Returns
        -------
        rep : SymOp, SymMatrix, SymPermutation, or SymBasisPermute
            Representation without master group.
        """
        if (kind := d.get('representation')) not in _variants:
            raise ValueError(f'unknown representation "{kind}"')
        if (tag := d.get('symmetry')) not in _symmetry_types:
            raise ValueError(f'unknown symmetry type "{tag}"')
        try:
            rep = _variants[kind]._from_payload(d)
        except (KeyError,TypeError) as e:
            raise ValueError(f'malformed {kind} record: {e}') from e
        rep._symmetry_type = tag
        return rep



class SymOp(SymOpRepresentation):
    """
    Cartesian symmetry operation x -> matrix @ x + tau.

    This is the coordinate representation (rep_id 0) of a master group.
    """

    kind = 'SymOp'

    def __init__(self,
                 matrix: FloatSequence,
                 tau: Optional[FloatSequence] = None,
                 master_group: Any = None,
                 rep_id: Optional[int] = None,
                 op_index: Optional[int] = None):
        """
        New Cartesian symmetry operation.

        Parameters
        ----------
        matrix : numpy.ndarray, shape (3,3)
            Point operation.
        tau : numpy.ndarray, shape (3), optional
            Translation. Defaults to zero.
        master_group : MasterSymGroup, optional
            Group this operation belongs to.
        rep_id : int, optional
            Representation table.
        op_index : int, optional
            Position within the group.
        """
        super().__init__(master_group,rep_id,op_index)
        self._matrix = np.array(matrix,dtype=float)
        self._tau = np.zeros(3) if tau is None else np.array(tau,dtype=float)
        if self._matrix.shape != (3,3):
            raise ValueError(f'invalid matrix shape {self._matrix.shape}')
        if self._tau.shape != (3,):
            raise ValueError(f'invalid translation shape {self._tau.shape}')

    @property
    def character(self) -> float:
        return float(np.trace(self._matrix))

    @property
    def matrix(self) -> np.ndarray:
        return _readonly(self._matrix)

    @property
    def tau(self) -> np.ndarray:
        """Translation."""
        return _readonly(self._tau)

    def __mul__(self,
                other: 'SymOp') -> 'SymOp':
        """
        Return self*other.

        Compose, i.e. apply other first.
        """
        return SymOp(self._matrix@other._matrix,self._matrix@other._tau+self._tau)

    def inverse(self) -> 'SymOp':
        """Inverse operation."""
        inv = self._matrix.T
        return SymOp(inv,-inv@self._tau)

    def calc_symmetry_type(self) -> SymmetryType:
        tol = self.master_group.tol if self.has_valid_master else util.TOL
        return _classify(self._matrix,self._tau,tol)

    def _payload(self) -> dict[str, Any]:
        return {'matrix':self._matrix.tolist(),'tau':self._tau.tolist()}

    def _equal_data(self, other, tol):
        return bool(np.allclose(self._matrix,other._matrix,rtol=0.,atol=tol)
                    and np.allclose(self._tau,other._tau,rtol=0.,atol=tol))

    @staticmethod
    def _from_payload(d):
        return SymOp(d['matrix'],d.get('tau'))



class SymMatrix(SymOpRepresentation):
    """Matrix representation of arbitrary dimension."""

    kind = 'SymMatrix'

    def __init__(self,
                 matrix: FloatSequence,
                 master_group: Any = None,
                 rep_id: Optional[int] = None,
                 op_index: Optional[int] = None):
        super().__init__(master_group,rep_id,op_index)
        self._matrix = np.array(matrix,dtype=float)
        if self._matrix.ndim != 2 or self._matrix.shape[0] != self._matrix.shape[1]:
            raise ValueError(f'invalid matrix shape {self._matrix.shape}')

    @property
    def character(self) -> float:
        return float(np.trace(self._matrix))

    @property
    def matrix(self) -> np.ndarray:
        return _readonly(self._matrix)

    def _payload(self):
        return {'matrix':self._matrix.tolist()}

    def _equal_data(self, other, tol):
        return self._matrix.shape == other._matrix.shape \
           and bool(np.allclose(self._matrix,other._matrix,rtol=0.,atol=tol))

    @staticmethod
    def _from_payload(d):
        return SymMatrix(d['matrix'])



class SymPermutation(SymOpRepresentation):
    """Permutation representation; entry i is the image of index i."""

    kind = 'SymPermutation'

    def __init__(self,
                 permutation: IntSequence,
                 master_group: Any = None,
                 rep_id: Optional[int] = None,
                 op_index: Optional[int] = None):
        super().__init__(master_group,rep_id,op_index)
        p = np.array(permutation,dtype=int)
        if p.ndim != 1 or not np.array_equal(np.sort(p),np.arange(len(p))):
            raise ValueError(f'invalid permutation {p.tolist()}')
        self._permutation = p

    @property
    def character(self) -> float:
        """Number of fixed points."""
        return float(np.count_nonzero(self._permutation == np.arange(len(self._permutation))))

    @property
    def permutation(self) -> np.ndarray:
        return _readonly(self._permutation)

    def _payload(self):
        return {'permutation':self._permutation.tolist()}

    def _equal_data(self, other, tol):
        return bool(np.array_equal(self._permutation,other._permutation))

    @staticmethod
    def _from_payload(d):
        return SymPermutation(d['permutation'])



class SymBasisPermute(SymOpRepresentation):
    """
    Mapping of basis sites.

    Row n gives the image of site n of the unit cell as
    (sublattice,i,j,k), i.e. sublattice index and unit cell offset.
    """

    kind = 'SymBasisPermute'

    def __init__(self,
                 basis_permutation: IntSequence,
                 master_group: Any = None,
                 rep_id: Optional[int] = None,
                 op_index: Optional[int] = None):
        super().__init__(master_group,rep_id,op_index)
        b = np.array(basis_permutation,dtype=int).reshape(-1,4)
        self._basis_permutation = b

    @property
    def basis_permutation(self) -> np.ndarray:
        return _readonly(self._basis_permutation)

    def _payload(self):
        return {'basis_permutation':self._basis_permutation.tolist()}

    def _equal_data(self, other, tol):
        return bool(np.array_equal(self._basis_permutation,other._basis_permutation))

    @staticmethod
    def _from_payload(d):
        return SymBasisPermute(d['basis_permutation'])


_variants: dict[str, Any] = {c.kind: c for c in (SymOp,SymMatrix,SymPermutation,SymBasisPermute)}
