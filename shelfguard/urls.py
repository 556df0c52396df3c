from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # REST API
    path('api/auth/', include('users.urls')),
    path('api/', include('inventory.urls')),
]
