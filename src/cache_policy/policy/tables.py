"""Fixed lookup tables shared by the policy model and every renderer.

These are read-only module constants; nothing mutates them at run time.
"""

# Ref: https://docs.aws.amazon.com/AmazonCloudFront/latest/DeveloperGuide/RequestAndResponseBehaviorCustomOrigin.html#RequestCustomHTTPMethods
ALLOWED_METHODS: tuple[str, ...] = (
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
)

CACHED_METHODS: tuple[str, ...] = (
    "HEAD",
    "GET",
    "OPTIONS",
)

# CloudFront strips these request headers unless a behavior allow-lists them.
# "Name" deletes the header, "Name:Value" forces a fixed value instead.
REMOVED_HEADERS: tuple[str, ...] = (
    "Accept",
    "Accept-Charset",
    "Accept-Language:en-US",
    "Referer",
    "User-Agent:Cached-Request",
)

# Error responses CloudFront caches; rendered with a zero minimum TTL.
ERROR_CODES: tuple[int, ...] = (400, 403, 404, 405, 414, 500, 501, 502, 503, 504)

# Headers that always take part in the cache key.
ALWAYS_VARY: tuple[str, ...] = ("Host",)

COOKIE_CARRIER_PREFIX = "X-COOKIE-"

S3_SUFFIX = ".s3.amazonaws.com"
