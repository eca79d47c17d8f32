"""
The MODEL layer contains pure data structures and lattice math.
It has NO knowledge of the GUI (Qt). It deals with geometry, transforms,
the scale bar and band-structure data.
"""
