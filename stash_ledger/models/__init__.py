"""
Types here are instantiated as subclasses of pydantic's `BaseModel`.
This means we get runtime deserialization and validation for free just by using type declarations
and a couple of pydantic helpers.

Use these in your code as python objects, then serialize to json by converting to a dict with `.model_dump()`
"""

from stash_ledger.models.Config import *
from stash_ledger.models.Ledger import *
from stash_ledger.models.Store import *
from stash_ledger.models.types import *
