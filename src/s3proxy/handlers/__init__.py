"""Request handlers for s3proxy."""
