"""Functionality for typehints."""

from typing import Sequence, Union, Literal, TextIO
from pathlib import Path

import numpy as np


FloatSequence = Union[np.ndarray,Sequence[float]]
IntSequence = Union[np.ndarray,Sequence[int]]
FileHandle = Union[TextIO, str, Path]
SymmetryType = Literal['identity', 'mirror', 'glide', 'rotation', 'screw', 'inversion', 'rotoinversion', 'invalid']
RepresentationKind = Literal['SymOp', 'SymMatrix', 'SymPermutation', 'SymBasisPermute']
