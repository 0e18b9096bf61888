"""dairy_portal.integrations — external service gateway modules.

All outbound HTTP calls to third-party APIs must go through a gateway in
this package, never via bare ``requests`` calls in services or blueprints.

Current gateways:
  blob_storage.VercelBlobGateway — Vercel Blob REST API (file storage)
  blob_storage.LocalBlobStorage  — filesystem stand-in for development / tests
"""
