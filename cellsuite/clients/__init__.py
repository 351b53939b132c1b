from .agent_admin import AgentAdminClient as AgentAdminClient
from .desired_state import DesiredStateClient as DesiredStateClient
from .routing import RoutingClient as RoutingClient
from .tls import build_mutual_tls_context as build_mutual_tls_context
