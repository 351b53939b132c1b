from .fault_injector import FaultInjector as FaultInjector
from .fault_spec import FaultSpec as FaultSpec
from .models import Injection as Injection
from .one_shot_latch import OneShotLatch as OneShotLatch
