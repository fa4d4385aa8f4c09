"""
Picturesque: smart-crop a photo, run it through a few effects and turn it
into a primitive picture, saving every intermediate result.
"""

__version__ = "1.0.0"
