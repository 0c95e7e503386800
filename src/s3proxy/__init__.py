"""s3proxy - serve S3 objects over HTTP like files on a web server."""

__version__ = "0.1.0"
