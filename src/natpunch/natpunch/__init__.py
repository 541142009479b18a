from natpunch.core.types import Endpoint, EndpointSet, NegotiationState, PunchMessage
from natpunch.net.channel import UdpChannel
from natpunch.net.client import PunchthroughConfig, PunchthroughSession

__all__ = [
    'Endpoint',
    'EndpointSet',
    'NegotiationState',
    'PunchMessage',
    'UdpChannel',
    'PunchthroughConfig',
    'PunchthroughSession',
]

__version__ = '0.1.0'
