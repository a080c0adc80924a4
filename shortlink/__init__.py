"""shortlink: sequential base62 short links with a Redis cache-aside directory."""
