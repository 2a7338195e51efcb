"""Navigator Credentials Meta information.
   Navigator Credentials keeps per-tenant AI provider keys encrypted at rest
   and dispatches generation requests to the configured providers.
"""
__title__ = 'navigator_credentials'
__description__ = (
   'Navigator Credentials keeps per-tenant AI provider keys encrypted '
   'at rest and dispatches generation requests to AI providers.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-credentials'
