from stash_ledger.queries.common import *
from stash_ledger.queries.stash import *
