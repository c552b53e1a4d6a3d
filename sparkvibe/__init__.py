"""SparkVibe API client with offline fallbacks."""
