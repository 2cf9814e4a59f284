import pytest
import numpy as np

from superlat import hermite


@pytest.mark.parametrize('volume,N',[(1,1),(2,7),(3,13),(4,35),(5,31),(6,91)])
def test_count(volume,N):
    assert len(list(hermite.hermite_normal_forms(volume))) == N

@pytest.mark.parametrize('volume',[1,4,6,12])
def test_form(volume):
    for H in hermite.hermite_normal_forms(volume):
        assert round(np.linalg.det(H)) == volume
        assert np.all(np.triu(H,1) == 0)
        assert 0 <= H[1,0] < H[1,1] and 0 <= H[2,0] < H[2,2] and 0 <= H[2,1] < H[2,2]

@pytest.mark.parametrize('volume',[1,5,6])
def test_unique(volume):
    HNFs = [H.tolist() for H in hermite.hermite_normal_forms(volume)]
    assert len(HNFs) == len(set(map(str,HNFs)))

@pytest.mark.parametrize('volume',[1,2,3,4,6,8,12])
def test_dims_1(volume):
    assert [H.tolist() for H in hermite.hermite_normal_forms(volume,1)] == [np.diag([volume,1,1]).tolist()]

@pytest.mark.parametrize('volume,N',[(1,1),(2,3),(4,7),(6,12)])
def test_dims_2(volume,N):
    HNFs = list(hermite.hermite_normal_forms(volume,2))
    assert len(HNFs) == N
    assert all(H[2].tolist() == [0,0,1] for H in HNFs)

@pytest.mark.parametrize('volume,dims',[(0,3),(1,0),(1,4)])
def test_invalid(volume,dims):
    with pytest.raises(ValueError):
        list(hermite.hermite_normal_forms(volume,dims))


@pytest.mark.parametrize('volume',[2,5,6])
def test_normal_form_fixed_point(volume):
    for H in hermite.hermite_normal_forms(volume):
        assert np.all(hermite.hermite_normal_form(H) == H)

def test_normal_form(random_unimodular):
    for H in hermite.hermite_normal_forms(6):
        for U in random_unimodular(3):
            assert np.all(hermite.hermite_normal_form(H@U) == H)

@pytest.mark.parametrize('T',[np.zeros((3,3),dtype=int),np.eye(3)*.5,np.eye(2,dtype=int)])
def test_normal_form_invalid(T):
    with pytest.raises(ValueError):
        hermite.hermite_normal_form(T)
