# All application routes are versioned and live in v1/
from . import v1 as v1
