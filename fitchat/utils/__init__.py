"""
UTILITIES PACKAGE
=================

Helpers used by the services and the CLI (no HTTP, no business logic):

  images - open_photo_source(path): open/capture/close a meal photo as a PNG data URI;
           normalize_data_uri(uri): validate and re-encode a client-supplied photo.
"""
