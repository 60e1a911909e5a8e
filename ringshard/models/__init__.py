from .node_record import NodeRecord as NodeRecord
from .virtual_node import VirtualNode as VirtualNode
