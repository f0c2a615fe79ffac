"""libvault - encrypted library-lending records

This package contains the core modules:
- Field encryption (security.py)
- JSON document store (database.py)
- Records (book.py, user.py)
- User lookup and maintenance (directory.py)
- Book catalog and ID scheme (library.py)
- Borrow/return workflow, due dates and fees (lending.py)
- Facade used by front ends (api.py)
"""

from .api import LibrarySystem
from .session import Session, SessionHolder

__all__ = ["LibrarySystem", "Session", "SessionHolder"]
