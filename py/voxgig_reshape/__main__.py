# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.

from .cli import main


if __name__ == '__main__':
    main()
