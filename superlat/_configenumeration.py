import logging
from typing import Optional, Union, Any

import numpy as np

from ._typehints import FloatSequence
from ._yaml import YAML
from ._lattice import Lattice
from ._mastersymgroup import MasterSymGroup
from ._supercellenumerator import SupercellEnumerator
from . import util


logger = logging.getLogger(__name__)

class ConfigEnumeration(YAML):
    """
    Supercell enumeration configuration.

    Manipulate enumeration settings for storage in YAML format.
    A complete configuration has the entries 'lattice' (basis vectors as
    columns) and 'volume' (smallest and largest supercell volume).
    Optional entries are 'dimensions', 'tolerance', and 'point_group'.
    A point group is kept as given and written in its serialized form.
    """

    def __init__(self,
                 config: Optional[Union[str, dict[str, Any]]] = None,*,
                 lattice: Optional[Union[Lattice, FloatSequence]] = None,
                 volume: Optional[Union[int, tuple[int, int]]] = None,
                 dimensions: Optional[int] = None,
                 tolerance: Optional[float] = None,
                 point_group: Optional[MasterSymGroup] = None):
        """
        New enumeration configuration.

        Parameters
        ----------
        config : dict or str, optional
            Enumeration configuration. String needs to be valid YAML.
        lattice : superlat.Lattice or numpy.ndarray, shape (3,3), optional
            Reference lattice.
        volume : int or (int,int), optional
            Supercell volume or smallest and largest supercell volume.
        dimensions : int, optional
            Number of lattice vectors to expand.
        tolerance : float, optional
            Tolerance.
        point_group : superlat.MasterSymGroup, optional
            Point group. Determined from the lattice if not given.
        """
        kwargs: dict[str, Any] = {}
        if lattice is not None:
            kwargs['lattice'] = (lattice.basis if isinstance(lattice,Lattice) else np.array(lattice)).tolist()
        if volume is not None:
            kwargs['volume'] = [volume,volume] if np.isscalar(volume) else list(volume)
        if dimensions is not None:
            kwargs['dimensions'] = dimensions
        if tolerance is not None:
            kwargs['tolerance'] = tolerance
        if point_group is not None:
            kwargs['point_group'] = point_group

        super().__init__(config,**kwargs)


    @property
    def is_complete(self) -> bool:
        """
        Check for completeness.

        Returns
        -------
        complete : bool
            Whether all mandatory entries are present.
        """
        if miss := [k for k in ['lattice','volume'] if self.get(k) is None]:
            logger.warning(f'Top-level {util.srepr(miss,",",quote=True)} missing')
            return False
        return True


    @property
    def is_valid(self) -> bool:
        """
        Check for valid content.

        Returns
        -------
        valid : bool
            Whether the entries describe a possible enumeration.
        """
        ok = True

        if not isinstance(tol := self.get('tolerance',util.TOL),(int,float)) or tol <= 0.:
            logger.warning(f'Invalid tolerance {self["tolerance"]}')
            tol = util.TOL
            ok = False

        if 'lattice' in self:
            try:
                Lattice(self['lattice'],tol)
            except ValueError as e:
                logger.warning(f'Invalid lattice: {e}')
                ok = False

        if 'volume' in self:
            v = self['volume']
            if len(util.to_list(v)) != 2 or not all(isinstance(x,int) for x in v):
                logger.warning(f'Invalid volume range {v}')
                ok = False
            elif not 1 <= v[0] <= v[1]:
                logger.warning(f'Empty volume range {v}')
                ok = False

        if self.get('dimensions',3) not in (1,2,3):
            logger.warning(f'Invalid dimensions {self["dimensions"]}')
            ok = False

        if 'point_group' in self and not isinstance(self['point_group'],MasterSymGroup):
            try:
                MasterSymGroup.from_dict(self['point_group'])
            except (ValueError,KeyError,TypeError) as e:
                logger.warning(f'Invalid point group: {e}')
                ok = False

        return ok


    @property
    def lattice(self) -> Lattice:
        """Reference lattice."""
        return Lattice(self['lattice'],self.get('tolerance',util.TOL))


    @property
    def point_group(self) -> MasterSymGroup:
        """Point group, determined from the lattice if not stored."""
        tol = self.get('tolerance',util.TOL)
        if isinstance(G := self.get('point_group'),MasterSymGroup):
            return G
        return MasterSymGroup.from_dict(G) if G is not None else \
               MasterSymGroup.from_lattice(self.lattice,tol)


    def enumerator(self,
                   verbose: bool = False) -> SupercellEnumerator:
        """
        Create supercell enumerator.

        Parameters
        ----------
        verbose : bool, optional
            Show progress. Defaults to False.

        Returns
        -------
        enumerator : superlat.SupercellEnumerator
            Enumerator for the configured lattice and volume range.
        """
        if not self.is_complete or not self.is_valid:
            raise ValueError('incomplete or invalid enumeration configuration')
        return SupercellEnumerator(self.lattice,self.point_group,*self['volume'],
                                   dims=self.get('dimensions',3),
                                   tol=self.get('tolerance',util.TOL),
                                   verbose=verbose)
