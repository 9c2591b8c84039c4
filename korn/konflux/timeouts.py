from __future__ import annotations

# Image operations (podman). A pull is the most expensive step of a candidate check.
IMAGE_PULL_TIMEOUT_SECONDS = 10 * 60.0
IMAGE_INSPECT_TIMEOUT_SECONDS = 60.0

# Git operations used to resolve snapshot versions
GIT_CLONE_TIMEOUT_SECONDS = 10 * 60.0
GIT_TIMEOUT_SECONDS = 30.0
