"""Miscellaneous helper functionality."""

import sys as _sys
import datetime as _datetime
import contextlib as _contextlib
from collections import abc as _abc
from pathlib import Path as _Path
from typing import Optional as _Optional, Iterable as _Iterable, \
                   Literal as _Literal, Any as _Any, TextIO as _TextIO, Generator as _Generator

import numpy as _np

from ._typehints import FloatSequence as _FloatSequence, FileHandle as _FileHandle

TOL = 1.e-5


####################################################################################################
# Functions
####################################################################################################
def srepr(msg,
          glue: str = '\n',
          quote: bool = False) -> str:
    r"""
    Join (quoted) items with glue string.

    Parameters
    ----------
    msg : (sequence of) object with __repr__
        Items to join.
    glue : str, optional
        Glue used for joining operation. Defaults to '\n'.
    quote : bool, optional
        Quote items. Defaults to False.

    Returns
    -------
    joined : str
        String representation of the joined and quoted items.
    """
    q = '"' if quote else ''
    if (not hasattr(msg, 'strip') and
           (hasattr(msg, '__getitem__') or
            hasattr(msg, '__iter__'))):
        return glue.join(q+str(x)+q for x in msg)
    else:
        return q+(msg if isinstance(msg,str) else repr(msg))+q


@_contextlib.contextmanager
def open_text(fname: _FileHandle,
              mode: _Literal['r','w'] = 'r') -> _Generator[_TextIO, None, None]:                    # noqa
    """
    Open a text file with Unix line endings.

    If a path or string is given, a context manager ensures that
    the file handle is closed.
    If a file handle is given, it remains unmodified.

    Parameters
    ----------
    fname : file, str, or pathlib.Path
        Name or handle of file.
    mode : {'r','w'}, optional
        Access mode: 'r'ead or 'w'rite, defaults to 'r'.

    Returns
    -------
    f : file handle
        File handle for a text file.
    """
    if isinstance(fname, (str,_Path)):
        fhandle = open(_Path(fname).expanduser(),mode,newline=('\n' if mode == 'w' else None))
        yield fhandle
        fhandle.close()
    else:
        yield fname


def show_progress(iterable: _Iterable,
                  N_iter: _Optional[int] = None,
                  prefix: str = '',
                  bar_length: int = 50) -> _Any:
    """
    Decorate a loop with a progress bar.

    Use similar like enumerate.

    Parameters
    ----------
    iterable : iterable
        Iterable to be decorated.
    N_iter : int, optional
        Total number of iterations. Required if iterable is not a sequence.
    prefix : str, optional
        Prefix string. Defaults to ''.
    bar_length : int, optional
        Length of progress bar in characters. Defaults to 50.
    """
    if isinstance(iterable,_abc.Sequence):
        if N_iter is None:
            N = len(iterable)
        else:
            raise ValueError('N_iter given for sequence')
    else:
        if N_iter is None:
            raise ValueError('N_iter not given')

        N = N_iter

    if N <= 1:
        for item in iterable:
            yield item
    else:
        status = ProgressBar(N,prefix,bar_length)
        for i,item in enumerate(iterable):
            yield item
            status.update(i)


def is_symmetric(M: _FloatSequence,
                 tol: float = 0.) -> bool:
    """
    Test whether a square matrix is symmetric about its main diagonal.

    Parameters
    ----------
    M : numpy.ndarray, shape (n,n)
        Square matrix.
    tol : float, optional
        Absolute tolerance for element comparison. Defaults to 0.

    Returns
    -------
    symmetric : bool
        Whether |M_ij - M_ji| ≤ tol for all i,j.
    """
    m = _np.asarray(M,dtype=float)
    return bool(_np.all(_np.abs(m-m.T) <= tol)) if m.size > 0 else True


def is_persymmetric(M: _FloatSequence,
                    tol: float = 0.) -> bool:
    """
    Test whether a square matrix is symmetric about its anti-diagonal.

    Parameters
    ----------
    M : numpy.ndarray, shape (n,n)
        Square matrix.
    tol : float, optional
        Absolute tolerance for element comparison. Defaults to 0.

    Returns
    -------
    persymmetric : bool
        Whether |M_ij - M_(n-1-j)(n-1-i)| ≤ tol for all i,j.
    """
    m = _np.asarray(M,dtype=float)
    return bool(_np.all(_np.abs(m-m[::-1,::-1].T) <= tol)) if m.size > 0 else True


def spatial_unroll(M: _FloatSequence) -> _np.ndarray:
    """
    Flatten a square matrix by increasing distance from the main diagonal.

    The diagonal comes first, followed by the first super- and sub-diagonal,
    then the second ones, and so on.

    Parameters
    ----------
    M : numpy.ndarray, shape (...,n,n)
        Square matrix.

    Returns
    -------
    unrolled : numpy.ndarray, shape (...,n*n)
        Matrix elements in unroll order.
    """
    m = _np.asarray(M)
    n = m.shape[-1]
    order = [(i,i) for i in range(n)]
    for k in range(1,n):
        order += [(i,i+k) for i in range(n-k)] + [(i+k,i) for i in range(n-k)]
    rows,cols = zip(*order) if order else ((),())
    return m[...,list(rows),list(cols)]


def to_list(a: _Any) -> list:
    """
    Put into list.

    Parameters
    ----------
    a : any
        Variable to put into list or convert to list.

    Returns
    -------
    l : list
        Data in list.
    """
    return [a] if not hasattr(a,'__iter__') or isinstance(a,str) else list(a)


####################################################################################################
# Classes
####################################################################################################
class ProgressBar:
    """
    Report progress of an interation as a status bar.

    Works for 0-based loops, ETA is estimated by linear extrapolation.
    """

    def __init__(self,
                 total: int,
                 prefix: str,
                 bar_length: int):
        """
        New progress bar.

        Parameters
        ----------
        total : int
            Total # of iterations.
        prefix : str
            Prefix string.
        bar_length : int
            Character length of bar.
        """
        self.total = total
        self.prefix = prefix
        self.bar_length = bar_length
        self.time_start = self.time_last_update = _datetime.datetime.now()
        self.fraction_last = 0.0

        if _sys.stdout.isatty():
            _sys.stdout.write(f"{self.prefix} {'░'*self.bar_length}   0% ETA n/a")

    def update(self,
               iteration: int) -> None:

        fraction = (iteration+1) / self.total

        if (filled_length := int(self.bar_length * fraction)) > int(self.bar_length * self.fraction_last) or \
            _datetime.datetime.now() - self.time_last_update > _datetime.timedelta(seconds=10):
            self.time_last_update = _datetime.datetime.now()
            bar = '█' * filled_length + '░' * (self.bar_length - filled_length)
            remaining_time = (_datetime.datetime.now() - self.time_start) \
                           * (self.total - (iteration+1)) / (iteration+1)
            remaining_time -= _datetime.timedelta(microseconds=remaining_time.microseconds)         # remove μs
            if _sys.stdout.isatty():
                _sys.stdout.write(f'\r{self.prefix} {bar} {fraction:>4.0%} ETA {remaining_time}')

        self.fraction_last = fraction

        if iteration == self.total - 1 and _sys.stdout.isatty():
            _sys.stdout.write('\n')
