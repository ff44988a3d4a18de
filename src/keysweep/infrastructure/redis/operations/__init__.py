from .dbsize import dbsize
from .delete import delete_pipelined
from .scan import scan_page

__all__ = ["dbsize", "delete_pipelined", "scan_page"]
