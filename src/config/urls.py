"""
Root URL configuration of AutoLease.

- /admin/  Django admin
- /api/    marketplace JSON API
- /health/ liveness check
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path


def health(request):
    return JsonResponse({'status': 'ok'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('src.adapters.django_app.marketplace.urls')),
    path('health/', health, name='health'),
]
