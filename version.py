# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

version = '1.0.0'
