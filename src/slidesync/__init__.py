"""SlideSync application package.

A FastAPI service keeping one shared slideshow in sync: display clients render
the current scene, control clients steer playback over a websocket, and the
server owns the authoritative player state together with the scene catalog
and the media derivation pipeline that feeds it.
"""
