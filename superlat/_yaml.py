from io import StringIO
import abc
from typing import Optional, Union, Any, Type, TypeVar

import numpy as np
import yaml
try:
    from yaml import CSafeLoader as SafeLoader
    from yaml import CSafeDumper as SafeDumper
except ImportError:
    from yaml import SafeLoader                                                                     # type: ignore[assignment]
    from yaml import SafeDumper                                                                     # type: ignore[assignment]

from ._typehints import FileHandle
from ._lattice import Lattice
from . import util


MyType = TypeVar('MyType', bound='YAML')

class NiceDumper(SafeDumper):
    """Write lattices, symmetry objects, and numpy data as plain YAML."""

    def represent_data(self,
                       data: Any):
        """
        Reduce data to types known to the safe dumper.

        Dict subclasses become dict, arrays and lattices nested lists,
        numpy scalars Python scalars, and objects providing 'as_dict'
        (symmetry operations and groups) their serialized records.
        """
        if isinstance(data, dict) and type(data) is not dict:
            return self.represent_data(dict(data))
        if isinstance(data, np.ndarray):
            return self.represent_data(data.tolist())
        if isinstance(data, Lattice):
            return self.represent_data(data.basis.tolist())
        if isinstance(data, np.generic):
            return self.represent_data(data.item())
        if callable(getattr(data, 'as_dict', None)):
            return self.represent_data(data.as_dict())

        return super().represent_data(data)

    def ignore_aliases(self,
                       data: Any) -> bool:
        """Write repeated operations in full."""
        return True

    def write_line_break(self,
                         data: Optional[str] = None):                                               # not for CSafeDumper
        """Separate top-level entries by an empty line (https://github.com/yaml/pyyaml/issues/127)."""
        super().write_line_break(data)                                                              # type: ignore[misc]

        if len(self.indents) == 1:                                                                  # type: ignore[attr-defined]
            super().write_line_break()                                                              # type: ignore[misc]

    def increase_indent(self,
                        flow: bool = False,
                        indentless: bool = False):                                                  # not for CSafeDumper
        return super().increase_indent(flow, False)                                                 # type: ignore[misc]


def dump(data: Any,
         fname: FileHandle,
         **kwargs):
    """
    Write data to YAML file.

    Parameters
    ----------
    data : any
        Data to write. Lattices, numpy data, and objects with
        an 'as_dict' method are converted by NiceDumper.
    fname : file, str, or pathlib.Path
        Filename or file to write.
    **kwargs : dict
        Keyword arguments parsed to yaml.dump.
    """
    for key,default in [('width',256),
                        ('default_flow_style',None),
                        ('sort_keys',False),
                        ('allow_unicode',True),
                        ('Dumper',NiceDumper)]:
        kwargs.setdefault(key,default)

    with util.open_text(fname,'w') as fhandle:
        fhandle.write(yaml.dump(data,**kwargs))


class YAML(dict):
    """YAML-based configuration and storage."""

    def __init__(self,
                 config: Optional[Union[str, dict[str, Any]]] = None,
                 **kwargs):
        """
        New YAML-based configuration.

        Parameters
        ----------
        config : dict or str, optional
            YAML. String needs to be valid YAML.
        **kwargs : arbitrary key–value pairs, optional
            Top-level entries of the configuration.

        Notes
        -----
        Values given as key–value pairs take precedence
        over entries with the same key in 'config'.
        """
        if isinstance(config,str):
            kwargs = (yaml.load(config, Loader=SafeLoader) or {}) | kwargs
        elif isinstance(config,dict):
            kwargs = config | kwargs

        super().__init__(**kwargs)


    def __repr__(self) -> str:
        """
        Return repr(self).

        Show as in file.
        """
        output = StringIO()
        self.save(output)
        output.seek(0)
        return ''.join(output.readlines())


    @classmethod
    def load(cls: Type[MyType],
             fname: FileHandle) -> MyType:
        """
        Load from YAML file.

        Parameters
        ----------
        fname : file, str, or pathlib.Path
            Filename or file to read.

        Returns
        -------
        loaded : superlat.YAML
            YAML from file.
        """
        with util.open_text(fname) as fhandle:
            return cls(yaml.load(fhandle, Loader=SafeLoader))


    def save(self,
             fname: FileHandle,
             **kwargs):
        """
        Save to YAML file.

        Parameters
        ----------
        fname : file, str, or pathlib.Path
            Filename or file to write.
        **kwargs : dict
            Keyword arguments parsed to yaml.dump.
        """
        dump(self,fname,**kwargs)


    @property
    @abc.abstractmethod
    def is_complete(self):
        """Check for completeness."""
        raise NotImplementedError


    @property
    @abc.abstractmethod
    def is_valid(self):
        """Check for valid content."""
        raise NotImplementedError
