"""
Bedrock Add-on Toolchain

Discovers Minecraft Bedrock packs in a source tree, runs them through
plugin-contributed transformation steps, installs them into the game's
development pack folders and archives them as .mcpack / .mcaddon files.
"""
__version__ = "2.0.0"
