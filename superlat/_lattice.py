from typing import Optional, Union

import numpy as np

from ._typehints import FloatSequence, IntSequence
from . import util


class Lattice:
    """
    Periodic point lattice spanned by three basis vectors.

    The basis is stored as a 3x3 matrix whose columns are the lattice vectors.
    Lattices are immutable; operations return new instances.

    Attributes
    ----------
    basis : numpy.ndarray, shape (3,3)
        Lattice vectors as columns (read-only).
    tol : float
        Absolute tolerance used for comparison.

    Examples
    --------
    Face-centered cubic lattice with unit cubic lattice parameter:

    >>> import superlat
    >>> superlat.Lattice.fcc()
    Lattice vectors (columns):
    [[0.  0.5 0.5]
     [0.5 0.  0.5]
     [0.5 0.5 0. ]]
    """

    def __init__(self,
                 basis: Union[FloatSequence, 'Lattice'],
                 tol: float = util.TOL):
        """
        New lattice.

        Parameters
        ----------
        basis : numpy.ndarray, shape (3,3), or Lattice
            Lattice vectors as columns.
        tol : float, optional
            Absolute tolerance used for comparison. Defaults to superlat.TOL.
        """
        b = np.array(basis.basis if isinstance(basis,Lattice) else basis,dtype=float)
        if b.shape != (3,3):
            raise ValueError(f'invalid lattice basis shape {b.shape}')
        if not np.all(np.isfinite(b)):
            raise ValueError('lattice basis contains non-finite values')
        if np.abs(np.linalg.det(b)) <= tol*np.prod(np.linalg.norm(b,axis=0)):
            raise ValueError('singular lattice basis')

        b.flags.writeable = False
        self.basis = b
        self.tol = float(tol)


    def __repr__(self) -> str:
        """
        Return repr(self).

        Give short, human-readable summary.
        """
        return util.srepr(['Lattice vectors (columns):',str(self.basis)])


    def __eq__(self,
               other: object) -> bool:
        """
        Return self==other.

        Test basis equality within the tolerance of self.

        Parameters
        ----------
        other : Lattice
            Lattice to check for equality.

        Returns
        -------
        equal : bool
            Whether the basis vectors agree.
        """
        return NotImplemented if not isinstance(other,Lattice) else self.isclose(other)

    __hash__ = None                                                                                 # type: ignore[assignment]


    def isclose(self,
                other: 'Lattice',
                tol: Optional[float] = None) -> bool:
        """
        Report whether the basis is approximately equal to that of other.

        Parameters
        ----------
        other : Lattice
            Lattice to compare against.
        tol : float, optional
            Absolute tolerance. Defaults to self.tol.

        Returns
        -------
        close : bool
            Whether all basis components agree within tolerance.
        """
        return bool(np.allclose(self.basis,other.basis,rtol=0.,atol=self.tol if tol is None else tol))


    @property
    def volume(self) -> float:
        """Volume of the unit cell."""
        return float(np.abs(np.linalg.det(self.basis)))

    @property
    def gram(self) -> np.ndarray:
        """Metric tensor, i.e. dot products of the basis vectors."""
        return self.basis.T @ self.basis

    @property
    def is_right_handed(self) -> bool:
        """Whether the basis vectors form a right-handed system."""
        return bool(np.linalg.det(self.basis) > 0.)

    @property
    def parameters(self) -> dict[str, float]:
        """
        Return lattice parameters.

        Returns
        -------
        parameters : dict
            Lattice parameters a, b, c, alpha, beta, gamma.
            Angles are in radians.
        """
        a,b,c = np.linalg.norm(self.basis,axis=0)
        cosines = np.array([self.basis[:,1]@self.basis[:,2]/(b*c),
                            self.basis[:,2]@self.basis[:,0]/(c*a),
                            self.basis[:,0]@self.basis[:,1]/(a*b)])
        alpha,beta,gamma = np.arccos(np.clip(cosines,-1.,1.))
        return dict(a=float(a),b=float(b),c=float(c),alpha=float(alpha),beta=float(beta),gamma=float(gamma))


    def make_right_handed(self) -> 'Lattice':
        """
        Return right-handed basis for the same point lattice.

        Returns
        -------
        lattice : Lattice
            Self if right-handed, otherwise the lattice with all basis vectors inverted.
        """
        return self if self.is_right_handed else Lattice(-self.basis,self.tol)


    def transformation_to(self,
                          superlattice: 'Lattice') -> np.ndarray:
        """
        Calculate integer transformation matrix to a superlattice.

        Parameters
        ----------
        superlattice : Lattice
            Superlattice of self.

        Returns
        -------
        T : numpy.ndarray, shape (3,3)
            Integer matrix T with superlattice.basis = self.basis @ T.
        """
        T = np.linalg.solve(self.basis,superlattice.basis)
        if not np.allclose(T,T_int := np.rint(T),rtol=0.,atol=self.tol*10.):
            raise ValueError('lattice is not a superlattice of the reference')
        return T_int.astype(int)


    def is_superlattice_of(self,
                           other: 'Lattice') -> bool:
        """
        Test whether self is a superlattice of other.

        Parameters
        ----------
        other : Lattice
            Potential sublattice (the denser one).

        Returns
        -------
        superlattice : bool
            Whether the basis of self is an integer combination of that of other.
        """
        T = np.linalg.solve(other.basis,self.basis)
        return bool(np.allclose(T,np.rint(T),rtol=0.,atol=self.tol*10.))


    @staticmethod
    def from_transformation(reference: 'Lattice',
                            T: IntSequence) -> 'Lattice':
        """
        Initialize from reference lattice and integer transformation matrix.

        Parameters
        ----------
        reference : Lattice
            Reference lattice.
        T : numpy.ndarray, shape (3,3)
            Integer transformation matrix, columns are the new
            basis vectors in coordinates of the reference basis.

        Returns
        -------
        new : Lattice
            Lattice with basis reference.basis @ T.
        """
        T_ = np.array(T)
        if T_.shape != (3,3):
            raise ValueError(f'invalid transformation matrix shape {T_.shape}')
        if not np.issubdtype(T_.dtype,np.integer):
            if not np.allclose(T_,np.rint(T_)):
                raise ValueError(f'transformation matrix is not integer: {T_.tolist()}')
            T_ = np.rint(T_).astype(int)
        if round(np.linalg.det(T_)) == 0:
            raise ValueError('transformation matrix has zero determinant')

        return Lattice(reference.basis @ T_,reference.tol)


    @staticmethod
    def from_parameters(a: float,
                        b: float,
                        c: float,
                        alpha: float,
                        beta: float,
                        gamma: float,
                        degrees: bool = False,
                        tol: float = util.TOL) -> 'Lattice':
        """
        Initialize from lattice parameters.

        Parameters
        ----------
        a : float
            Length of lattice parameter 'a'.
        b : float
            Length of lattice parameter 'b'.
        c : float
            Length of lattice parameter 'c'.
        alpha : float
            Angle between b and c lattice basis.
        beta : float
            Angle between c and a lattice basis.
        gamma : float
            Angle between a and b lattice basis.
        degrees : bool, optional
            Angles are given in degrees. Defaults to False.
        tol : float, optional
            Absolute tolerance used for comparison. Defaults to superlat.TOL.

        Returns
        -------
        new : Lattice
            Lattice with 'a' along x and 'b' in the xy-plane.

        References
        ----------
        C.T. Young and J.L. Lytton, Journal of Applied Physics 43:1408–1417, 1972
        https://doi.org/10.1063/1.1661333
        """
        if degrees:
            alpha,beta,gamma = np.radians([alpha,beta,gamma])
        if np.any(np.array([alpha,beta,gamma]) <= 0):
            raise ValueError('lattice angles must be positive')
        if np.any([np.roll([alpha,beta,gamma],r)[0]
          >= np.sum(np.roll([alpha,beta,gamma],r)[1:]) for r in range(3)]):
            raise ValueError('each lattice angle must be less than sum of others')

        return Lattice(np.array([
                                 [1,0,0],
                                 [np.cos(gamma),np.sin(gamma),0],
                                 [np.cos(beta),
                                  (np.cos(alpha)-np.cos(beta)*np.cos(gamma))                     /np.sin(gamma),
                                  np.sqrt(1 - np.cos(alpha)**2 - np.cos(beta)**2 - np.cos(gamma)**2
                                        + 2 * np.cos(alpha)    * np.cos(beta)    * np.cos(gamma))/np.sin(gamma)],
                                ]).T
                       * np.array([a,b,c]),
                       tol)


    @staticmethod
    def cubic(a: float = 1.,
              tol: float = util.TOL) -> 'Lattice':
        """Simple cubic lattice with lattice parameter 'a'."""
        return Lattice(np.eye(3)*a,tol)

    @staticmethod
    def fcc(a: float = 1.,
            tol: float = util.TOL) -> 'Lattice':
        """Primitive face-centered cubic lattice with cubic lattice parameter 'a'."""
        return Lattice(np.array([[0.,1.,1.],
                                 [1.,0.,1.],
                                 [1.,1.,0.]])*a*.5,tol)

    @staticmethod
    def bcc(a: float = 1.,
            tol: float = util.TOL) -> 'Lattice':
        """Primitive body-centered cubic lattice with cubic lattice parameter 'a'."""
        return Lattice(np.array([[-1.,-1., 1.],
                                 [-1., 1.,-1.],
                                 [ 1.,-1.,-1.]])*a*.5,tol)

    @staticmethod
    def hexagonal(a: float = 1.,
                  c: Optional[float] = None,
                  tol: float = util.TOL) -> 'Lattice':
        """Hexagonal lattice, 'c' defaults to the ideal ratio c/a = sqrt(8/3)."""
        return Lattice(np.array([[1.,-.5,             0.],
                                 [0.,np.sqrt(3.)*.5,0.],
                                 [0.,0.,              np.sqrt(8./3.) if c is None else c/a]])*a,tol)
