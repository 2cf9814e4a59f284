import pytest
import numpy as np

from superlat import SupercellEnumerator
from superlat import MasterSymGroup
from superlat import Lattice
from superlat import niggli


@pytest.fixture
def ZrO_enumerator(ZrO_prim):
    return SupercellEnumerator(ZrO_prim,MasterSymGroup.from_lattice(ZrO_prim),3,5)

def enumerator(lattice,min_volume,max_volume,**kwargs):
    return SupercellEnumerator(lattice,MasterSymGroup.from_lattice(lattice),min_volume,max_volume,**kwargs)


def test_ZrO(ZrO_enumerator):
    assert ZrO_enumerator.counts[5] == 7

def test_ZrO_add_supercell(ZrO_enumerator):
    supercells = [S for S in ZrO_enumerator if np.isclose(S.volume,5*ZrO_enumerator.lattice.volume)]
    assert len(supercells) == 7
    left_handed = np.array([[3.2339869,0.0,      -1.6169934],
                            [0.0,      0.0,      14.003574 ],
                            [0.0,      5.1686783, 0.0      ]])
    assert not Lattice(left_handed).is_right_handed
    i = ZrO_enumerator.add_supercell(supercells,left_handed)
    assert len(supercells) == 7 and i < 7

def test_add_supercell_new():
    E = enumerator(Lattice.cubic(),2,2)
    supercells = list(E)
    assert E.add_supercell(supercells,np.diag([3.,1.,1.])) == 3
    assert len(supercells) == 4
    assert E.add_supercell(supercells,np.diag([1.,1.,3.])) == 3
    assert len(supercells) == 4

@pytest.mark.parametrize('lattice,counts',[(Lattice.cubic(),{1:1,2:3}),
                                           (Lattice.fcc(),{1:1,2:2,3:3,4:7})])
def test_counts(lattice,counts):
    E = enumerator(lattice,1,max(counts))
    assert E.counts == counts

def test_single_dimension():
    fcc = Lattice.fcc()
    E = enumerator(fcc,1,10,dims=1)
    enumerated = list(E)
    assert len(enumerated) == 10
    for l,S in enumerate(enumerated,1):
        assert S == E.canonical(Lattice.from_transformation(fcc,np.diag([l,1,1])))
        assert np.isclose(S.volume,l*fcc.volume)

def test_two_dimensions():
    E = enumerator(Lattice.cubic(),1,4,dims=2)
    for S in E:
        coordinates = np.linalg.solve(S.basis,np.eye(3))
        assert np.any(np.all(np.isclose(coordinates,np.rint(coordinates)),axis=0))
    assert E.counts == {1:1,2:2,3:2,4:4}


def test_superlattices(ZrO_enumerator):
    for S in ZrO_enumerator:
        assert S.is_right_handed
        assert niggli.is_niggli(S)
        assert S.is_superlattice_of(ZrO_enumerator.lattice)
        T = ZrO_enumerator.transformation_matrix(S)
        assert 3 <= round(abs(np.linalg.det(T))) <= 5

def test_distinct():
    E = enumerator(Lattice.fcc(),4,4)
    supercells = list(E)
    for i,S in enumerate(supercells):
        for S_ in supercells[i+1:]:
            assert S != S_

def test_restartable():
    E = enumerator(Lattice.hexagonal(),1,3)
    first,second = list(E),list(E)
    assert len(first) == len(second) > 0
    assert all(a == b for a,b in zip(first,second))

def test_ascending_volume():
    E = enumerator(Lattice.bcc(),1,4)
    volumes = [round(S.volume/E.lattice.volume) for S in E]
    assert volumes == sorted(volumes)

def test_reference_basis(random_unimodular):
    fcc = Lattice.fcc()
    pg = MasterSymGroup.from_lattice(fcc)
    reference = list(SupercellEnumerator(fcc,pg,1,3))
    for U in random_unimodular(3):
        skewed = list(SupercellEnumerator(fcc.basis@U,pg,1,3))
        assert len(skewed) == len(reference)
        assert all(any(S == R for R in reference) for S in skewed)

@pytest.mark.parametrize('point_group',[lambda L: MasterSymGroup.from_lattice(L),
                                        lambda L: list(MasterSymGroup.from_lattice(L)),
                                        lambda L: MasterSymGroup.from_lattice(L).matrices])
def test_point_group_types(point_group):
    L = Lattice.cubic()
    assert len(list(SupercellEnumerator(L,point_group(L),2,2))) == 3

def test_trivial_point_group():
    E = SupercellEnumerator(Lattice.cubic(),np.eye(3),2,2)
    assert len(list(E)) == 7

def test_verbose():
    assert len(list(enumerator(Lattice.cubic(),2,2,verbose=True))) == 3

def test_transformation_matrix():
    E = enumerator(Lattice.hexagonal(),1,1)
    T = np.array([[2,1,0],[0,1,0],[0,0,3]])
    assert np.array_equal(E.transformation_matrix(Lattice.from_transformation(E.lattice,T)),T)

def test_transformation_matrix_invalid():
    E = enumerator(Lattice.cubic(),1,1)
    with pytest.raises(ValueError):
        E.transformation_matrix(np.diag([1.5,1.,1.]))

@pytest.mark.parametrize('kwargs',[{'min_volume':0},
                                   {'min_volume':3,'max_volume':2},
                                   {'min_volume':1.5,'max_volume':2},
                                   {'dims':0},
                                   {'dims':4}])
def test_invalid(kwargs):
    with pytest.raises(ValueError):
        SupercellEnumerator(Lattice.cubic(),np.eye(3),**kwargs)

def test_empty_point_group():
    with pytest.raises(ValueError):
        SupercellEnumerator(Lattice.cubic(),[])

def test_repr(ZrO_enumerator):
    assert 'order 24' in repr(ZrO_enumerator)
