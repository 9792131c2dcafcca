from .index_type import IndexType as IndexType
