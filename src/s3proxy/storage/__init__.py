"""Object store clients for s3proxy."""
