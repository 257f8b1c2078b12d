from django.urls import path, include
from django.contrib import admin

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include("travels_main_app.urls")),
    path('api/', include("wallet.urls")),
]
