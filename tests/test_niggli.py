import pytest
import numpy as np

from superlat import Lattice
from superlat import MasterSymGroup
from superlat import SymOp
from superlat import niggli
from superlat import TOL


skewed_unimodular = np.array([[1,2,3],
                              [0,1,4],
                              [0,0,1]])

references = [Lattice.fcc(),Lattice.bcc(),Lattice.cubic(),Lattice.hexagonal(),
              Lattice.fcc(3.61),Lattice.hexagonal(3.2339869,5.1686783)]


@pytest.mark.parametrize('known',references)
@pytest.mark.parametrize('U',[skewed_unimodular,skewed_unimodular.T])
def test_reduce_skewed(known,U):
    assert niggli.is_niggli(known,TOL)
    skewed = Lattice.from_transformation(known,U)
    assert not niggli.is_niggli(skewed,TOL)
    assert niggli.niggli(skewed,TOL) == known

@pytest.mark.parametrize('known',references)
def test_reduce_random(known,random_unimodular):
    for U in random_unimodular(20):
        assert niggli.niggli(known.basis@U) == known

@pytest.mark.parametrize('known',references)
def test_reduce_inverted(known):
    assert niggli.niggli(-known.basis) == known

@pytest.mark.parametrize('U',[skewed_unimodular,skewed_unimodular.T])
def test_idempotent(np_rng,U):
    for _ in range(10):
        L = Lattice(np_rng.random((3,3))+np.eye(3))
        R = niggli.niggli(Lattice(L.basis@U))
        assert niggli.is_niggli(R)
        assert niggli.niggli(R) == R
        assert niggli.niggli(niggli.niggli(L)) == niggli.niggli(L)

def test_same_metric(np_rng):
    L = Lattice(np_rng.random((3,3))+np.eye(3))
    assert np.allclose(niggli.niggli_parameters(niggli.niggli(L)),
                       niggli.niggli_parameters(niggli.reduced_cell(L)))

def test_same_lattice(np_rng):
    L = Lattice(np_rng.random((3,3))*2.-1.+np.eye(3)*2.)
    R = niggli.niggli(L)
    T = L.transformation_to(R)
    assert np.isclose(abs(np.linalg.det(T)),1.)

def test_volume_preserved():
    L = Lattice.from_transformation(Lattice.bcc(),skewed_unimodular)
    assert np.isclose(niggli.niggli(L).volume,Lattice.bcc().volume)

@pytest.mark.parametrize('keep_handedness',[True,False])
def test_handedness(keep_handedness):
    L = Lattice(-Lattice.hexagonal().basis@skewed_unimodular)
    R = niggli.niggli(L,keep_handedness=keep_handedness)
    assert R.is_right_handed != keep_handedness
    assert niggli.is_niggli(R)

def test_reduced_cell():
    L = Lattice.from_transformation(Lattice.fcc(),skewed_unimodular)
    assert niggli.is_niggli(niggli.reduced_cell(L))
    assert np.allclose(niggli.niggli_parameters(niggli.reduced_cell(L)),[.5,.5,.5,.5,.5,.5])

def test_is_niggli_stack():
    stack = np.array([Lattice.fcc().basis,Lattice.fcc().basis@skewed_unimodular,Lattice.bcc().basis])
    assert niggli.is_niggli(stack).tolist() == [True,False,True]

@pytest.mark.parametrize('basis',[np.diag([2.,1.,1.]),
                                  [[1.,0.,0.],[.6,1.,0.],[0.,0.,1.]],
                                  [[1.,.5,0.],[0.,1.,0.],[0.,0.,1.]]])
def test_not_niggli(basis):
    assert not niggli.is_niggli(np.array(basis).T)

def test_parameters():
    assert np.allclose(niggli.niggli_parameters(Lattice.hexagonal(1.,2.)),[1.,1.,4.,0.,0.,-1.])

def test_singular():
    with pytest.raises(ValueError):
        niggli.niggli(np.array([[1.,0.,0.],[0.,1.,0.],[1.,1.,0.]]))


@pytest.fixture
def hexagonal_pg():
    return MasterSymGroup.from_lattice(Lattice.hexagonal())

def test_canonical_invariance(hexagonal_pg,random_unimodular):
    L = Lattice.from_transformation(Lattice.hexagonal(),[[2,1,0],[0,1,0],[0,0,1]])
    C = niggli.canonical_equivalent_lattice(L,hexagonal_pg)
    for U in random_unimodular(10):
        assert niggli.canonical_equivalent_lattice(L.basis@U,hexagonal_pg) == C

def test_canonical_symmetry_equivalent(hexagonal_pg):
    L = Lattice.from_transformation(Lattice.hexagonal(),[[3,1,0],[0,1,0],[0,0,2]])
    C = niggli.canonical_equivalent_lattice(L,hexagonal_pg)
    for op in hexagonal_pg:
        assert niggli.canonical_equivalent_lattice(op.matrix@L.basis,hexagonal_pg) == C

def test_canonical_idempotent(hexagonal_pg):
    L = Lattice.from_transformation(Lattice.hexagonal(),[[1,1,0],[0,2,0],[0,1,3]])
    C = niggli.canonical_equivalent_lattice(L,hexagonal_pg)
    assert niggli.canonical_equivalent_lattice(C,hexagonal_pg) == C
    assert C.is_right_handed
    assert niggli.is_niggli(C)

def test_canonical_point_group_types(hexagonal_pg):
    L = Lattice.from_transformation(Lattice.hexagonal(),[[2,0,0],[0,1,0],[0,0,1]])
    C = niggli.canonical_equivalent_lattice(L,hexagonal_pg)
    assert niggli.canonical_equivalent_lattice(L,hexagonal_pg.matrices) == C
    assert niggli.canonical_equivalent_lattice(L,list(hexagonal_pg)) == C

def test_canonical_trivial_group():
    L = Lattice.from_transformation(Lattice.cubic(),skewed_unimodular)
    assert niggli.canonical_equivalent_lattice(L,np.eye(3)[np.newaxis]) == Lattice.cubic()

def test_canonical_distinguishes():
    pg = MasterSymGroup.from_lattice(Lattice.cubic())
    A = Lattice.from_transformation(Lattice.cubic(),np.diag([2,1,1]))
    B = Lattice.from_transformation(Lattice.cubic(),[[1,1,0],[1,-1,0],[0,0,1]])
    assert niggli.canonical_equivalent_lattice(A,pg) != niggli.canonical_equivalent_lattice(B,pg)

def test_canonical_empty_group():
    with pytest.raises(ValueError):
        niggli.canonical_equivalent_lattice(Lattice.cubic(),np.empty((0,3,3)))


@pytest.mark.parametrize('lattice,order',[(Lattice.cubic(),48),(Lattice.fcc(),48),(Lattice.bcc(),48),
                                          (Lattice.hexagonal(),24),
                                          (Lattice.from_parameters(1.,1.2,1.5,np.pi/2,np.pi/2,np.pi/2),8)])
def test_lattice_point_group(lattice,order):
    S = niggli.lattice_point_group(lattice)
    assert S.shape == (order,3,3)
    assert np.allclose(S[0],np.eye(3))
    assert np.allclose(np.einsum('nji,njk->nik',S,S),np.eye(3))
    T = np.einsum('ij,njk->nik',np.linalg.inv(lattice.basis),S@lattice.basis)
    assert np.allclose(T,np.rint(T))

def test_lattice_point_group_master():
    assert np.allclose(niggli.lattice_point_group(Lattice.hexagonal()),
                       MasterSymGroup.from_lattice(Lattice.hexagonal()).matrices)

@pytest.mark.parametrize('point_group',[[SymOp(np.eye(3)),SymOp(-np.eye(3))],
                                        np.array([np.eye(3),-np.eye(3)]),
                                        MasterSymGroup([np.eye(3),-np.eye(3)])])
def test_operation_matrices(point_group):
    assert np.allclose(niggli.operation_matrices(point_group),[np.eye(3),-np.eye(3)])

def test_operation_matrices_empty():
    with pytest.raises(ValueError):
        niggli.operation_matrices([])
