"""
envoice - billing document sync between the Magaya ERP and the LaFactura.co
signing service.
"""

import envoice.logging  # noqa: F401  Configures loguru on import

__version__ = "1.0.0"
