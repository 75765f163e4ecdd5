"""Constants for platform providers."""

# Provider identifiers
PROVIDER_GITHUB = "github"
PROVIDER_GITLAB = "gitlab"
PROVIDER_FORGEJO = "forgejo"
PROVIDER_CODEBERG = "codeberg"
PROVIDER_SOURCEHUT = "sourcehut"

# GitHub API
GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_STARRED_PATH = "/user/starred"
GITHUB_RELEASES_PATH = "/repos/{owner}/{repo}/releases"
GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
GITHUB_WEB_BASE_URL = "https://github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_MAX_QPS = 15.0  # With token: 5000/hour

# GitLab API
GITLAB_API_BASE_URL = "https://gitlab.com/api/v4"
GITLAB_WEB_BASE_URL = "https://gitlab.com"
GITLAB_MAX_QPS = 10.0

# Forgejo / Codeberg API
CODEBERG_BASE_URL = "https://codeberg.org"
FORGEJO_API_PREFIX = "/api/v1"
FORGEJO_MAX_QPS = 10.0

# SourceHut API
SOURCEHUT_GRAPHQL_URL = "https://git.sr.ht/query"
SOURCEHUT_WEB_BASE_URL = "https://git.sr.ht"
SOURCEHUT_MAX_QPS = 5.0
SOURCEHUT_FALLBACK_TIMESTAMP = "1970-01-01T00:00:00Z"

# Git refs
TAG_REF_PREFIX = "refs/tags/"

# Releases endpoints are read as a single page of this size
RELEASES_PER_PAGE = 100

# Auth error remediation hints
AUTH_ERROR_HINTS = {
    PROVIDER_GITHUB: (
        "Check that github_token (or GITHUB_TOKEN) is a valid personal access "
        "token with access to starred repositories."
    ),
    PROVIDER_GITLAB: (
        "Check that gitlab_token (or GITLAB_TOKEN) is valid. "
        "Required scopes: read_user and read_api."
    ),
    PROVIDER_FORGEJO: (
        "Check that the Forgejo instance token is valid and has read access "
        "to the user and repositories."
    ),
    PROVIDER_SOURCEHUT: (
        "Check that the sourcehut token (or SOURCEHUT_TOKEN) is a valid "
        "personal access token with the git.sr.ht REPOSITORIES scope."
    ),
}
