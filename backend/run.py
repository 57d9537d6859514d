from gofish import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, host='0.0.0.0', port=app.config.get('PORT', 4000), debug=app.config.get('DEBUG', False))
