"""
SnapInk - Screen capture and annotation tool.

This package contains the main application modules:
- core: Application core, capture coordination and global hotkeys
- editor: Bitmap, geometry helpers and the annotation session
- ui: Qt widgets (main window, image view, hotkey settings)
- services: Application services (config, logging, export)
"""

__version__ = "0.1.0"
