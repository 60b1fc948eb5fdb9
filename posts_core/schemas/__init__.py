"""
Posts core schema definitions

Any schema has a base name and any of the following extended names:
 * ``Creation`` to create a new instance of that schema
 * ``Update`` to replace the mutable fields of an existing instance
For example, there are three classes to represent posts:
``Post``, ``PostCreation`` and ``PostUpdate``

An update always carries the version of the record it was based on,
since the server rejects updates of records that changed in the meantime.

This package also contains the ``config`` module, but it's not
exported by default, since it's currently only used internally.
"""

from .bases import *
from .errors import *
from .extra import *
