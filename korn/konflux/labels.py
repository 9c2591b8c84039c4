from __future__ import annotations

# Labels korn reads from Konflux records it does not own.
APPLICATION_TYPE_LABEL = "korn.redhat.io/application"
COMPONENT_TYPE_LABEL = "korn.redhat.io/component"
ENVIRONMENT_LABEL = "korn.redhat.io/environment"
BUNDLE_REFERENCE_LABEL = "korn.redhat.io/bundle-label"

OPERATOR_APPLICATION_TYPE = "operator"
FBC_APPLICATION_TYPE = "fbc"
BUNDLE_COMPONENT_TYPE = "bundle"

# Labels and annotations set by Konflux / Pipelines as Code.
EVENT_TYPE_LABEL = "pac.test.appstudio.openshift.io/event-type"
PUSH_EVENT_TYPE = "push"
APPLICATION_LABEL = "appstudio.openshift.io/application"
COMPONENT_LABEL = "appstudio.openshift.io/component"
SHA_LABEL = "pac.test.appstudio.openshift.io/sha"
SHA_TITLE_ANNOTATION = "pac.test.appstudio.openshift.io/sha-title"

# Image label carrying the semantic version of the built artifact.
VERSION_IMAGE_LABEL = "version"

# Status conditions.
TEST_SUCCEEDED_CONDITION = "AppStudioTestSucceeded"
TEST_FINISHED_REASON = "Finished"
RELEASED_CONDITION = "Released"
MANAGED_PIPELINE_CONDITION = "ManagedPipelineProcessed"
PIPELINE_CONDITION_SUFFIX = "PipelineProcessed"
PROGRESSING_REASON = "Progressing"
SUCCEEDED_REASON = "Succeeded"
FAILED_REASON = "Failed"
