def notifications(request):
    """Unread notification count for the bell in the top header"""
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return {}

    return {
        'unread_notifications_count': user.notifications.filter(is_read=False).count(),
    }
