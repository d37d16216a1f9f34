"""
Constants used throughout the Warden operator.

This module defines all constant values used by the operator including:
- API group and resource names of the WardenConfig resource
- Annotation keys stamped on the admission deployment
- Manifest asset paths for the admission subsystem
- Well-known secret types and keys holding trust material
"""

# WardenConfig custom resource
WARDEN_GROUP = "warden.io"
WARDEN_VERSION = "v1"
WARDEN_PLURAL = "wardenconfigs"

# Annotation constants on the admission deployment
# Both are set on the pod template so a value change forces a new pod generation
AGGREGATOR_CLIENT_CA_HASH_ANNOTATION = "warden.io/ca-hash"
SERVING_CERT_SECRET_HASH_ANNOTATION = "warden.io/serving-cert-secret-hash"

# Admission subsystem objects
ADMISSION_DEPLOYMENT_NAME = "warden-admission"
ADMISSION_SERVING_CERT_SECRET_NAME = "warden-admission-serving-cert"

# Manifest assets (relative to the warden_operator.assets package)
NAMESPACED_ASSETS = [
    "service.yaml",
    "service-account.yaml",
]
CLUSTER_ASSETS = [
    "rbac-role.yaml",
]
CLUSTER_ROLE_BINDING_ASSETS = [
    "rbac-role-binding.yaml",
]
DEPLOYMENT_ASSET = "deployment.yaml"
API_SERVICE_ASSET = "apiservice.yaml"
VALIDATING_WEBHOOK_ASSETS = [
    "policies-webhook.yaml",
    "policybindings-webhook.yaml",
    "exemptions-webhook.yaml",
]

# Trust material
SERVICE_ACCOUNT_TOKEN_SECRET_TYPE = "kubernetes.io/service-account-token"
CLUSTER_CA_KEY = "ca.crt"
SERVICE_CA_KEY = "service-ca.crt"

# Aggregator client CA published by the API server
AGGREGATOR_CA_CONFIGMAP_NAMESPACE = "kube-system"
AGGREGATOR_CA_CONFIGMAP_NAME = "extension-apiserver-authentication"
AGGREGATOR_CA_CONFIGMAP_KEY = "requestheader-client-ca-file"

# Status phase constants
PHASE_RECONCILING = "Reconciling"
PHASE_READY = "Ready"
PHASE_FAILED = "Failed"

# Condition type constants (following Kubernetes conventions)
CONDITION_READY = "Ready"
CONDITION_AVAILABLE = "Available"
CONDITION_PROGRESSING = "Progressing"
CONDITION_RECONCILING = "Reconciling"
CONDITION_DEGRADED = "Degraded"

# Condition status constants
CONDITION_TRUE = "True"
CONDITION_FALSE = "False"

# Error message templates
ERROR_NO_TOKEN_SECRET = "No secrets of type '{}' found in namespace '{}'"
ERROR_MISSING_SECRET_KEY = "Secret '{}' did not contain key '{}'"
