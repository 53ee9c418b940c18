from .accept import Accept as Accept
from .accept import AcceptEntry as AcceptEntry
from .headers import EnvironHeaders as EnvironHeaders
from .headers import iter_multi_items as iter_multi_items
from .structures import FieldState as FieldState
from .structures import ResolvedAttributes as ResolvedAttributes
