from .port_allocator import PortAllocator as PortAllocator
