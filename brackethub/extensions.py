"""Flask extensions shared by every blueprint.

The Firestore handle is not listed here; see ``brackethub.store``.
"""

from flask_wtf.csrf import CSRFProtect

# JSON clients send the token from /auth/csrf_token in an X-CSRFToken header.
csrf = CSRFProtect()
