from pathlib import Path

import numpy as np
import pytest

import superlat


def pytest_addoption(parser):
    parser.addoption('--rng-entropy',
                     help='Entropy for random seed generator.')

@pytest.fixture
def np_rng(request):
    """Instance of numpy.random.Generator."""
    e = request.config.getoption('--rng-entropy')
    print('\nrng entropy: ',sq := np.random.SeedSequence(e if e is None else int(e)).entropy)
    return np.random.default_rng(seed=sq)


@pytest.fixture
def res_path_base():
    """Directory containing testing resources."""
    return Path(__file__).parent/'resources'


@pytest.fixture
def ZrO_prim():
    """Primitive hexagonal lattice of ZrO."""
    return superlat.Lattice(np.array([[3.2339869, 0.0,       0.0      ],
                                      [-1.6169934,2.8007148, 0.0      ],
                                      [0.0,       0.0,       5.1686783]]).T)


@pytest.fixture
def random_unimodular(np_rng):
    """Random integer matrices with determinant ±1."""
    def _random_unimodular(N=10,steps=6):
        U = np.broadcast_to(np.eye(3,dtype=int),(N,3,3)).copy()
        for n in range(N):
            for _ in range(steps):
                i,j = np_rng.choice(3,2,replace=False)
                U[n][:,i] += np_rng.choice([-1,1]) * U[n][:,j]
            if np_rng.random() < .5:
                U[n][:,0] *= -1
        return U

    return _random_unimodular


@pytest.fixture
def assert_allclose():
    """
    Asserts the element-wise equality of two arrays within relative+absolute tolerance.

    Parameters
    ----------
    a : np.ndarray
        Array to compare.
    b : np.ndarray
        Array to compare.
    rtol : float
        Relative tolerance.
    atol : float
        Absolute tolerance.
    """
    def _assert_allclose(a,b,
                         rtol: float = 1e-05,
                         atol: float = 1e-08):
        a_,b_ = np.asarray(a),np.asarray(b)
        assert np.allclose(a_,b_,rtol=rtol,atol=atol), \
               f'max abs diff {np.max(np.abs(a_-b_))} between\n{a_}\nand\n{b_}'

    return _assert_allclose
