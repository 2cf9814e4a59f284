"""
Canonical Lattices and Symmetrically Distinct Superlattices.

References
----------
I. Křivý and B. Gruber, Acta Crystallographica A32:297–298, 1976
https://doi.org/10.1107/S0567739476000636

G.L.W. Hart and R.W. Forcade, Physical Review B 77:224115, 2008
https://doi.org/10.1103/PhysRevB.77.224115
"""

from pathlib import Path as _Path
import re as _re
import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

name = 'superlat'
with open(_Path(__file__).parent/_Path('VERSION')) as _f:
    version = _re.sub(r'^v','',_f.readline().strip())
    __version__ = version

from .                        import _typehints             # noqa
from .                        import util                   # noqa
from .util                    import TOL                    # noqa
# Modules that contain only one class (of the same name), are prefixed by a '_'.
# For example, '_lattice' contains a class called 'Lattice' which is imported as 'superlat.Lattice'.
from ._lattice                import Lattice                # noqa
from ._yaml                   import YAML                   # noqa
from .                        import niggli                 # noqa
from .                        import hermite                # noqa
from ._symop                  import SymOpRepresentation, SymOp, SymMatrix, SymPermutation, SymBasisPermute, \
                                     MasterGroupError, RepresentationError      # noqa
from ._mastersymgroup         import MasterSymGroup         # noqa
from ._supercellenumerator    import SupercellEnumerator    # noqa
from ._configenumeration      import ConfigEnumeration      # noqa
