from .helpers import (
    INITIAL_INDEX_SUFFIX as INITIAL_INDEX_SUFFIX,
    pack_initial_index_name as pack_initial_index_name,
    pack_template_name as pack_template_name,
    pack_template_pattern as pack_template_pattern,
    truncate_long_strings as truncate_long_strings,
)
