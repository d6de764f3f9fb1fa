"""Default names and limits shared across libgroot."""

DEFAULT_REPO_DIR = '.groot'
OBJECTS_SUBDIR = 'objects'
HEAD_FILE = 'HEAD'
INDEX_FILE = 'index'

HASH_LENGTH = 40
HASH_CHARSET = '0123456789abcdef'

ENCODING = 'utf-8'
