PROJECT_NAME = "GnamiAI Gateway"
API_PREFIX = "/api"
TOKEN_HEADER = "x-gnamiai-token"
LOCAL_HOSTS = ("127.0.0.1", "::1", "::ffff:127.0.0.1", "localhost")
